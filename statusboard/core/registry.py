"""View registry: the fixed mapping from view id to source adapter.

Built once at startup by the composition root and read-only afterwards.
Iteration follows registration order so that default runs are
reproducible.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from .errors import UnknownViewError
from .models import ViewId
from .ports import SourceAdapter


@dataclass(frozen=True)
class ViewRegistration:
    """One registry entry."""

    view: ViewId
    adapter: SourceAdapter
    enabled_by_default: bool = True
    timeout: float | None = None  # per-view override, seconds

    def __post_init__(self) -> None:
        """Validate registration invariants on creation."""
        if not self.view or not self.view.strip():
            raise ValueError("view must be a non-empty string")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")


class ViewRegistry:
    """Read-only lookup of source adapters by view id."""

    def __init__(self, registrations: Iterable[ViewRegistration]):
        self._entries: dict[ViewId, ViewRegistration] = {}
        for registration in registrations:
            if registration.view in self._entries:
                raise ValueError(f"Duplicate view registration: {registration.view}")
            self._entries[registration.view] = registration
        self._order: tuple[ViewId, ...] = tuple(self._entries)

    def all_view_ids(self) -> tuple[ViewId, ...]:
        """Every registered view, in registration order."""
        return self._order

    def default_view_ids(self) -> tuple[ViewId, ...]:
        """Views enabled by default, in registration order."""
        return tuple(v for v in self._order if self._entries[v].enabled_by_default)

    def adapter_for(self, view: str) -> SourceAdapter:
        """Return the adapter registered for ``view``.

        Raises:
            UnknownViewError: If ``view`` is not registered.
        """
        return self._registration(view).adapter

    def is_enabled_by_default(self, view: str) -> bool:
        return self._registration(view).enabled_by_default

    def timeout_for(self, view: str, fallback: float) -> float:
        """Per-view timeout override, or ``fallback`` when none was registered."""
        timeout = self._registration(view).timeout
        return fallback if timeout is None else timeout

    def _registration(self, view: str) -> ViewRegistration:
        try:
            return self._entries[ViewId(view)]
        except KeyError:
            raise UnknownViewError(view) from None

    def __contains__(self, view: object) -> bool:
        return view in self._entries

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[ViewId]:
        return iter(self._order)
