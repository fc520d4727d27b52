"""Selection filter: turns user intent into an ordered list of views.

The registry order always wins over the order the user typed ids in,
so output stays stable between runs.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from .errors import UnknownViewError
from .models import ViewId
from .registry import ViewRegistry


@dataclass(frozen=True)
class All:
    """Every registered view."""


@dataclass(frozen=True)
class Defaults:
    """Every view that is enabled by default."""


@dataclass(frozen=True)
class Only:
    """Exactly the given views."""

    views: frozenset[str]

    def __init__(self, views: Iterable[str]):
        if isinstance(views, str):
            views = [views]
        object.__setattr__(self, "views", frozenset(views))


@dataclass(frozen=True)
class Except:
    """Every registered view except the given ones."""

    views: frozenset[str]

    def __init__(self, views: Iterable[str]):
        if isinstance(views, str):
            views = [views]
        object.__setattr__(self, "views", frozenset(views))


Selection = All | Defaults | Only | Except


def _check_known(views: Iterable[str], registry: ViewRegistry) -> None:
    # Sorted so the reported id is deterministic when several are unknown
    for view in sorted(views):
        if view not in registry:
            raise UnknownViewError(view)


def resolve_selection(
    selection: Selection, registry: ViewRegistry
) -> tuple[ViewId, ...]:
    """Resolve a selection against the registry.

    An empty result is valid and is not an error.

    Raises:
        UnknownViewError: If Only or Except names an unregistered view.
        TypeError: If ``selection`` is not a Selection.
    """
    if isinstance(selection, All):
        return registry.all_view_ids()

    if isinstance(selection, Defaults):
        return registry.default_view_ids()

    if isinstance(selection, Only):
        _check_known(selection.views, registry)
        return tuple(v for v in registry.all_view_ids() if v in selection.views)

    if isinstance(selection, Except):
        _check_known(selection.views, registry)
        return tuple(v for v in registry.all_view_ids() if v not in selection.views)

    raise TypeError(f"Unsupported selection: {selection!r}")


def parse_view_list(value: str | None) -> list[str]:
    """Split a comma-separated flag value into view ids.

    Whitespace is trimmed, blanks are dropped, and duplicates collapse to
    their first occurrence.
    """
    if not value:
        return []
    seen: dict[str, None] = {}
    for part in value.split(","):
        part = part.strip()
        if part:
            seen.setdefault(part, None)
    return list(seen)


def selection_from_flags(
    only: str | None = None,
    exclude: str | None = None,
    all_views: bool = False,
) -> Selection:
    """Build a selection from ``--only`` / ``--except`` / ``--all`` flag values.

    Raises:
        ValueError: If more than one of the flags is given.
    """
    given = sum(1 for flag in (only, exclude) if flag) + (1 if all_views else 0)
    if given > 1:
        raise ValueError("--only, --except and --all are mutually exclusive")
    if only:
        return Only(parse_view_list(only))
    if exclude:
        return Except(parse_view_list(exclude))
    if all_views:
        return All()
    return Defaults()
