"""Core domain logic for the Statusboard aggregation engine.

This package contains zero external dependencies and represents
the pure business logic of the application. All adapters and
external integrations are handled by the adapters package.
"""

from .errors import (
    SourceError,
    SourceNetworkError,
    SourceRateLimited,
    SourceTimeout,
    SourceUnauthorized,
    SourceUnexpected,
    UnknownViewError,
)
from .models import (
    FetchContext,
    FetchError,
    FetchErrorKind,
    Snapshot,
    ViewData,
    ViewId,
    ViewResult,
    ViewState,
)

__all__ = [
    "FetchContext",
    "FetchError",
    "FetchErrorKind",
    "Snapshot",
    "SourceError",
    "SourceNetworkError",
    "SourceRateLimited",
    "SourceTimeout",
    "SourceUnauthorized",
    "SourceUnexpected",
    "UnknownViewError",
    "ViewData",
    "ViewId",
    "ViewResult",
    "ViewState",
]
