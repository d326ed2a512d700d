"""Changelog task dispatch.

This module starts Devin sessions for synthesized task specifications:
- Authenticated POST to the sessions endpoint
- Session handle extraction with an "unknown" fallback
- Status code and body captured on failure
"""

from src.changelog.dispatch.devin import (
    UNKNOWN_SESSION,
    DevinClient,
    DispatchError,
    DispatchResult,
)

__all__ = [
    "UNKNOWN_SESSION",
    "DevinClient",
    "DispatchError",
    "DispatchResult",
]
