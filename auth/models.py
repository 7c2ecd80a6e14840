"""
auth/models.py -- Domain dataclasses for the Clef strategy.

Pattern: Data class (data containers; the only behaviour is the derived
RequestContext.is_logout flag). Dataclasses own the domain shape; the scheme
and the dependency layer do the work.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

# Credentials attached to a request after authentication. For a login this is
# the user object Clef returned (always carries "id"); for a logout it is
# {"id": <clef user id>}.
Credentials = dict[str, Any]


@dataclass(frozen=True)
class CookieOptions:
    """How the state cookie is written and sealed.

    password is the HS256 signing secret. The scheme never reads these
    fields -- only auth/tokens.py does when sealing and setting the cookie.
    """

    password: str
    secure: bool = True
    http_only: bool = True
    path: str = "/"
    same_site: str = "lax"
    max_age: Optional[int] = None  # None = session cookie
    domain: Optional[str] = None


@dataclass(frozen=True)
class RequestContext:
    """Read-only view of one inbound request, as the evaluator consumes it.

    state is the unsealed state cookie value (None when the cookie is absent
    or did not verify). payload is the parsed body for POST requests.
    """

    method: str
    query: Mapping[str, str] = field(default_factory=dict)
    state: Optional[str] = None
    payload: Optional[Mapping[str, Any]] = None

    @property
    def is_logout(self) -> bool:
        return self.method.upper() == "POST"
