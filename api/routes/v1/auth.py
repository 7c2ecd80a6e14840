"""
api/routes/v1/auth.py -- State parameter issuance for script and SPA clients.

Routes:
  GET /api/v1/auth/state   -- new state token in the body + matching state cookie

The server-rendered example page (web/routes.py) does the same thing inline.
This endpoint serves front ends that render the Clef button themselves: they
read "state" from the JSON body and the browser keeps the cookie.

Security:
  [M5] Cache-Control: no-store -- a cached state response would hand the same
       token to every client behind a shared cache.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from api.models import StateResponse
from auth.dependencies import get_scheme
from auth.tokens import get_state_parameter, set_state_cookie

# Auth policy:
# - GET /api/v1/auth/state: public -- it is the first step of a login
router = APIRouter()


@router.get("/auth/state", response_model=StateResponse)
async def issue_state(
    request: Request,
    size: Optional[int] = Query(default=None, ge=1, le=256, description="Random bytes in the token (default 24)."),
) -> JSONResponse:
    """Issue a state token and set it as the state cookie in the same response."""
    scheme = get_scheme(request)
    state = get_state_parameter(size)
    resp = JSONResponse(content=StateResponse(state=state).model_dump())
    set_state_cookie(resp, state, scheme.cookie_name, scheme.cookie_options)
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp
