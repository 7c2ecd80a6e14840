"""
web/routes.py -- Jinja2 template routes for the ClefAuth example UI.

These routes serve server-rendered HTML. They share app.state with the API
routes (same registered Clef scheme) but return HTML instead of JSON.

Routes:
  GET /   -- login-initiation page: Clef button carrying a fresh state token,
             with the matching state cookie set on the same response
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from auth.dependencies import get_scheme
from auth.tokens import get_state_parameter, set_state_cookie

logger = logging.getLogger("clefauth.web")

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))
router = APIRouter()


@router.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    size: Optional[int] = Query(default=None, ge=1, le=256),
) -> HTMLResponse:
    """Render the Clef login button.

    The state token goes into the button's data-state attribute (Clef echoes
    it back as ?state=) and, sealed, into the state cookie. GET /login then
    compares the two.
    """
    scheme = get_scheme(request)
    state = get_state_parameter(size)
    resp = templates.TemplateResponse(
        request,
        "index.html",
        {
            "app_id": scheme.options.app_id,
            "redirect_url": str(request.url_for("login")),
            "state": state,
        },
    )
    set_state_cookie(resp, state, scheme.cookie_name, scheme.cookie_options)
    resp.headers["Cache-Control"] = "no-store"
    return resp
