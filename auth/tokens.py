"""
auth/tokens.py -- State parameter issuance and state cookie sealing.

Security design decisions:
  State parameter: secrets.token_bytes() is the CSPRNG. The token's only
       security property is unguessability, so the random module is never
       used here. Default 24 bytes = 192 bits of entropy. Base64 text is
       returned because that is what the Clef button embeds in its redirect.

  State cookie: python-jose with HS256. The state value is signed with
       CookieOptions.password so a client cannot plant an arbitrary cookie
       value. The state is not secret (it also travels in the redirect URL),
       so signing is enough -- no encryption. Verification returns None on any
       failure and the scheme treats None exactly like a missing cookie.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

import base64
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from auth.models import CookieOptions

_ALGORITHM = "HS256"
_DEFAULT_STATE_BYTES = 24


# ---------------------------------------------------------------------------
# State parameter
# ---------------------------------------------------------------------------


def get_state_parameter(size: Optional[int] = None) -> str:
    """Return `size` cryptographically random bytes as base64 text.

    A falsy size (None, 0) means the default of 24 bytes. The caller stores
    the value in the state cookie and embeds the same value in the login page.
    """
    raw = secrets.token_bytes(size or _DEFAULT_STATE_BYTES)
    return base64.b64encode(raw).decode("ascii")


# ---------------------------------------------------------------------------
# Cookie sealing
# ---------------------------------------------------------------------------


def seal_state(value: str, options: CookieOptions) -> str:
    """Sign the state value for storage in the state cookie.

    When options.max_age is set the signature carries a matching exp claim,
    so a replayed cookie stops verifying even if the browser kept it.
    """
    payload: dict = {"state": value}
    if options.max_age:
        payload["exp"] = datetime.now(timezone.utc) + timedelta(seconds=options.max_age)
    return jwt.encode(payload, options.password, algorithm=_ALGORITHM)


def unseal_state(sealed: Optional[str], options: CookieOptions) -> Optional[str]:
    """Verify a sealed state cookie. Returns the state value or None on any failure."""
    if not sealed:
        return None
    try:
        payload = jwt.decode(sealed, options.password, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    value = payload.get("state")
    if not isinstance(value, str) or not value:
        return None
    return value


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_state_cookie(response, value: str, cookie_name: str, options: CookieOptions) -> None:
    """Seal `value` and write it as the state cookie on a Starlette response.

    Call from the view that renders the Clef login button, in the same
    response that embeds `value` in the page.
    """
    response.set_cookie(
        cookie_name,
        value=seal_state(value, options),
        max_age=options.max_age,
        path=options.path,
        domain=options.domain,
        secure=options.secure,
        httponly=options.http_only,
        samesite=options.same_site,
    )


def delete_state_cookie(response, cookie_name: str, options: CookieOptions) -> None:
    """Expire the state cookie. Renewal after a login is the caller's job."""
    response.delete_cookie(cookie_name, path=options.path, domain=options.domain)
