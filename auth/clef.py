"""
auth/clef.py -- Provider exchange clients for the Clef API.

The scheme depends on the ExchangeClient protocol only. ClefClient is the
production implementation; tests pass their own object with the same two
coroutines. Anything supplied as StrategyOptions.client must expose an
initialize(app_id, app_secret) callable that returns an ExchangeClient.

Clef API flow:
  login  -- POST /authorize (code, app_id, app_secret) -> access_token
            GET  /info?access_token=...                 -> info (user object)
  logout -- POST /logout (logout_token, app_id, app_secret) -> clef_id

Every failure -- transport error, non-JSON body, success=false, an "error"
field, a missing field -- raises ClefClientError. The scheme logs it and
turns it into the generic "Clef error"; nothing here is user visible.

Concurrency: requests is blocking, so each exchange runs in the Starlette
threadpool via run_in_threadpool(). The event loop keeps serving other
requests while one exchange waits on the network. No retries.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, runtime_checkable

import requests
from starlette.concurrency import run_in_threadpool

from auth.errors import ClefClientError

logger = logging.getLogger("clefauth.auth.clef")

CLEF_API_BASE = "https://clef.io/api/v1"


@runtime_checkable
class ExchangeClient(Protocol):
    """Capability the scheme uses to resolve identities with the provider."""

    async def exchange_login_code(self, code: Optional[str]) -> dict[str, Any]:
        """Resolve an authorization code to the user's identity attributes."""
        ...

    async def exchange_logout_token(self, token: Optional[str]) -> str:
        """Resolve a logout token to the user's Clef id."""
        ...


class ClefClient:
    """Production ExchangeClient backed by the Clef REST API."""

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        api_base: str = CLEF_API_BASE,
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._app_id = app_id
        self._app_secret = app_secret
        self._api_base = api_base.rstrip("/")
        self._timeout = timeout
        # One session per client for connection pooling. The Clef API never
        # redirects, so 3 hops is generous.
        self._session = session or requests.Session()
        self._session.max_redirects = 3

    @classmethod
    def initialize(cls, app_id: str, app_secret: str, **kwargs: Any) -> "ClefClient":
        """Factory used by the scheme at registration time."""
        return cls(app_id, app_secret, **kwargs)

    # ------------------------------------------------------------------
    # ExchangeClient
    # ------------------------------------------------------------------

    async def exchange_login_code(self, code: Optional[str]) -> dict[str, Any]:
        return await run_in_threadpool(self.get_login_information, code)

    async def exchange_logout_token(self, token: Optional[str]) -> str:
        return await run_in_threadpool(self.get_logout_information, token)

    # ------------------------------------------------------------------
    # Blocking API calls
    # ------------------------------------------------------------------

    def get_login_information(self, code: Optional[str]) -> dict[str, Any]:
        """Exchange an OAuth code for an access token, then fetch the user info."""
        if not code:
            raise ClefClientError("Missing authorization code")

        token_data = self._request(
            "POST",
            "authorize",
            data={"code": code, "app_id": self._app_id, "app_secret": self._app_secret},
        )
        access_token = token_data.get("access_token")
        if not access_token:
            raise ClefClientError("Clef /authorize response carried no access_token")

        info_data = self._request("GET", "info", params={"access_token": access_token})
        info = info_data.get("info")
        if not isinstance(info, dict):
            raise ClefClientError("Clef /info response carried no user info")
        return info

    def get_logout_information(self, logout_token: Optional[str]) -> str:
        """Exchange a logout token for the Clef id of the user logging out."""
        if not logout_token:
            raise ClefClientError("Missing logout token")

        data = self._request(
            "POST",
            "logout",
            data={"logout_token": logout_token, "app_id": self._app_id, "app_secret": self._app_secret},
        )
        clef_id = data.get("clef_id")
        if clef_id is None or clef_id == "":
            raise ClefClientError("Clef /logout response carried no clef_id")
        return str(clef_id)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> dict[str, Any]:
        """Call one Clef endpoint and return the decoded JSON body.

        Clef reports failures as {"success": false, "error": "..."} -- often
        alongside a 4xx status, so the body is inspected before the status.
        """
        url = f"{self._api_base}/{endpoint}"
        try:
            resp = self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as e:
            raise ClefClientError(f"Clef /{endpoint} request failed: {e}") from e

        try:
            body = resp.json()
        except ValueError as e:
            raise ClefClientError(f"Clef /{endpoint} returned a non-JSON body (HTTP {resp.status_code})") from e

        if not isinstance(body, dict):
            raise ClefClientError(f"Clef /{endpoint} returned an unexpected body")
        if body.get("error"):
            raise ClefClientError(f"Clef /{endpoint} error: {body['error']}")
        if resp.status_code >= 400 or body.get("success") is False:
            raise ClefClientError(f"Clef /{endpoint} failed (HTTP {resp.status_code})")

        logger.debug("Clef /%s succeeded", endpoint)
        return body

    def close(self) -> None:
        self._session.close()
