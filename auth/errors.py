"""
auth/errors.py -- Failure taxonomy of the Clef strategy.

Only two messages are ever shown to the end user: "State mismatch" and
"Clef error". ClefClientError carries provider detail and stays internal --
the scheme logs it and raises ProviderExchangeError in its place.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations


class ClefAuthError(Exception):
    """Base class for user-visible authentication failures (HTTP 401)."""

    code = "unauthorized"
    message = "Authentication required."

    def __init__(self) -> None:
        super().__init__(self.message)


class StateMismatchError(ClefAuthError):
    """State query param missing, state cookie missing, or the two differ."""

    code = "state_mismatch"
    message = "State mismatch"


class ProviderExchangeError(ClefAuthError):
    """The provider exchange for a login code or logout token failed."""

    code = "clef_error"
    message = "Clef error"


class ClefClientError(Exception):
    """Raised by exchange clients. Never surfaced to the caller."""
