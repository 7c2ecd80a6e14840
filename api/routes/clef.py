"""
api/routes/clef.py -- Clef callback and logout webhook endpoints.

Routes (mounted at the root, the URLs registered in the Clef dashboard):
  GET  /login   -- Clef redirects here with ?code=...&state=...
  POST /logout  -- Clef logout webhook, body carries logout_token

Both handlers only run after the Clef dependency has authenticated the
request. Failures never reach the handler: the dependency raises HTTP 401
with "State mismatch" or "Clef error".

Security:
  [H2] Both endpoints are rate-limited per IP (Settings.login_rate_limit).
  [M5] Cache-Control: no-store on responses carrying identity.
  The state cookie is single-use: the login response expires it.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LogoutResponse
from auth.dependencies import get_scheme, require_clef_login, require_clef_logout
from auth.models import Credentials
from auth.tokens import delete_state_cookie
from core.config import get_settings

logger = logging.getLogger("clefauth.api.clef")

router = APIRouter()

_RATE_LIMIT = get_settings().login_rate_limit


@limiter.limit(_RATE_LIMIT)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.get("/login")
async def login(request: Request, credentials: Credentials = Depends(require_clef_login)) -> JSONResponse:
    """Return the Clef user object for the authenticated login.

    Applications hook their own session handling in here; the example just
    echoes the credentials.
    """
    logger.info("Clef login for user %s", credentials.get("id"))
    scheme = get_scheme(request)
    resp = JSONResponse(content=credentials)
    delete_state_cookie(resp, scheme.cookie_name, scheme.cookie_options)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@limiter.limit(_RATE_LIMIT)  # [H2]
@router.post("/logout", response_model=LogoutResponse)
async def logout(request: Request, credentials: Credentials = Depends(require_clef_logout)) -> JSONResponse:
    """Acknowledge a Clef logout webhook for the resolved user id."""
    logger.info("Clef logout for user %s", credentials["id"])
    resp = JSONResponse(content=LogoutResponse(**credentials).model_dump())
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp
