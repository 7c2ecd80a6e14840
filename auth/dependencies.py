"""
auth/dependencies.py -- FastAPI Depends() helpers for the Clef strategy.

Two entry points, one per route shape:
  require_clef_login()  -- GET callback route Clef redirects to after login.
  require_clef_logout() -- POST webhook Clef calls when a user logs out.
                           Runs the authentication phase and then the payload
                           phase (the body carries logout_token).

Both read the ClefScheme registered on app.state.clef, build a RequestContext
from the Starlette request (unsealing the state cookie on the way), and
return the credentials dict. A ClefAuthError becomes HTTP 401 here and
nowhere else; the message is always "State mismatch" or "Clef error".

Layer rule: no imports from web/ or core/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from fastapi import HTTPException, Request

from auth.errors import ClefAuthError
from auth.models import Credentials, RequestContext
from auth.scheme import ClefScheme
from auth.tokens import unseal_state

logger = logging.getLogger("clefauth.auth.dependencies")


def get_scheme(request: Request) -> ClefScheme:
    """Return the scheme registered at startup by auth.scheme.register()."""
    return request.app.state.clef


def build_context(request: Request, scheme: ClefScheme, payload: Optional[dict[str, Any]] = None) -> RequestContext:
    """Snapshot the parts of the request the scheme looks at.

    A state cookie that fails verification is treated as absent -- the login
    then fails with "State mismatch" like any other missing cookie.
    """
    sealed = request.cookies.get(scheme.cookie_name)
    return RequestContext(
        method=request.method,
        query=dict(request.query_params),
        state=unseal_state(sealed, scheme.cookie_options),
        payload=payload,
    )


async def read_payload(request: Request) -> Optional[dict[str, Any]]:
    """Parse a JSON or form body into a dict. Returns None when there is no usable body.

    Clef posts logout webhooks as form data; JSON is accepted too. A body
    without a content type is tried as JSON.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        return dict(form)

    raw = await request.body()
    if not raw:
        return None
    try:
        body = json.loads(raw)
    except ValueError:
        logger.debug("Ignoring non-JSON logout body (%d bytes)", len(raw))
        return None
    return body if isinstance(body, dict) else None


def _unauthorized(exc: ClefAuthError) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": exc.code, "message": exc.message},
    )


async def require_clef_login(request: Request) -> Credentials:
    """Require a successful Clef login. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/login")
        async def route(credentials: dict = Depends(require_clef_login)): ...
    """
    scheme = get_scheme(request)
    try:
        return await scheme.authenticate(build_context(request, scheme))
    except ClefAuthError as exc:
        raise _unauthorized(exc) from exc


async def require_clef_logout(request: Request) -> Credentials:
    """Require a valid Clef logout token in the request body. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.post("/logout")
        async def route(credentials: dict = Depends(require_clef_logout)): ...
    """
    scheme = get_scheme(request)
    payload = await read_payload(request)
    try:
        return await scheme.evaluate(build_context(request, scheme, payload))
    except ClefAuthError as exc:
        raise _unauthorized(exc) from exc
