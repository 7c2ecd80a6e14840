"""
auth/scheme.py -- The Clef authentication scheme.

ClefScheme is the state machine that decides whether a request is
authenticated. It is framework-free: it consumes a RequestContext and either
returns Credentials or raises a ClefAuthError. auth/dependencies.py adapts it
to FastAPI and is the single place those errors become HTTP 401s.

Branches (selected by request method):

  POST (logout) -- authentication phase returns empty credentials with no
      state check. The payload phase exchanges body["logout_token"] for a Clef
      id and yields {"id": <clef id>}. Logout is not anti-forgery protected;
      the logout token itself comes from Clef.

  anything else (login) -- the "state" query param and the unsealed state
      cookie must both be present and equal, otherwise StateMismatchError
      before any provider call. On a match, query["code"] is exchanged for
      the user object, which becomes the credentials unmodified.

Any exchange failure (client error, unexpected exception, timeout) is logged
at ERROR with the original exception attached and replaced by
ProviderExchangeError. Provider detail never reaches the response.

The scheme holds only frozen options and the exchange client. No locks, no
per-request state -- concurrent evaluations are independent, and the
provider await is the only suspension point.

Layer rule: no imports from api/, web/, or core/.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import Awaitable, Callable
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from auth.clef import ClefClient, ExchangeClient
from auth.errors import ProviderExchangeError, StateMismatchError
from auth.models import CookieOptions, Credentials, RequestContext

logger = logging.getLogger("clefauth.auth.scheme")


# ---------------------------------------------------------------------------
# Strategy options -- validated once at registration, frozen afterwards
# ---------------------------------------------------------------------------


class StrategyOptions(BaseModel):
    """Configuration for one Clef strategy.

    Validation errors raise pydantic.ValidationError at register() time, so a
    misconfigured strategy never serves a request.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    app_id: str = Field(min_length=1)
    app_secret: SecretStr
    cookie_name: str = Field(default="hapi-clef", min_length=1)
    cookie_options: CookieOptions
    # Any object with initialize(app_id, app_secret, **client_options).
    client: Any = ClefClient
    client_options: dict[str, Any] = Field(default_factory=dict)
    # Seconds. None leaves provider calls unbounded.
    exchange_timeout: Optional[float] = Field(default=10.0, gt=0)

    @field_validator("app_secret")
    @classmethod
    def secret_not_empty(cls, value: SecretStr) -> SecretStr:
        if not value.get_secret_value():
            raise ValueError("app_secret must not be empty")
        return value

    @field_validator("cookie_options")
    @classmethod
    def cookie_password_set(cls, value: CookieOptions) -> CookieOptions:
        if not value.password:
            raise ValueError("cookie_options.password must not be empty")
        return value

    @field_validator("client")
    @classmethod
    def client_has_initialize(cls, value: Any) -> Any:
        if not callable(getattr(value, "initialize", None)):
            raise ValueError("client must provide an initialize(app_id, app_secret) callable")
        return value


# ---------------------------------------------------------------------------
# Scheme
# ---------------------------------------------------------------------------


class ClefScheme:
    """Evaluates login and logout requests against Clef."""

    def __init__(self, options: StrategyOptions) -> None:
        self.options = options
        self.client: ExchangeClient = options.client.initialize(
            options.app_id,
            options.app_secret.get_secret_value(),
            **options.client_options,
        )

    @property
    def cookie_name(self) -> str:
        return self.options.cookie_name

    @property
    def cookie_options(self) -> CookieOptions:
        return self.options.cookie_options

    async def authenticate(self, ctx: RequestContext) -> Credentials:
        """Authentication phase. Runs before the request body is read."""
        if ctx.is_logout:
            return {}

        query_state = ctx.query.get("state")
        if not query_state or not ctx.state or not _same_state(query_state, ctx.state):
            raise StateMismatchError()

        return await self._exchange(self.client.exchange_login_code, ctx.query.get("code"), "login code")

    async def payload(self, ctx: RequestContext) -> Credentials:
        """Payload phase (logout only). Resolves body["logout_token"] to a user id.

        Clef reports the id as a number; credentials always carry it as a string.
        """
        body = ctx.payload or {}
        user_id = await self._exchange(self.client.exchange_logout_token, body.get("logout_token"), "logout token")
        return {"id": str(user_id)}

    async def evaluate(self, ctx: RequestContext) -> Credentials:
        """Run both phases the way the request pipeline would."""
        credentials = await self.authenticate(ctx)
        if ctx.is_logout:
            credentials = await self.payload(ctx)
        return credentials

    async def _exchange(self, call: Callable[[Any], Awaitable[Any]], value: Any, what: str) -> Any:
        async def guarded() -> Any:
            # Client failures, including a client's own TimeoutError, end here,
            # so the outer TimeoutError can only come from wait_for.
            try:
                return await call(value)
            except Exception as exc:
                logger.error("Clef %s exchange failed", what, exc_info=exc)
                raise ProviderExchangeError() from exc

        timeout = self.options.exchange_timeout
        if timeout is None:
            return await guarded()
        try:
            return await asyncio.wait_for(guarded(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.error("Clef %s exchange timed out after %.1fs", what, timeout)
            raise ProviderExchangeError() from exc


def _same_state(query_state: str, cookie_state: str) -> bool:
    # Exact equality, compared in constant time. surrogatepass keeps lone
    # surrogates comparable instead of raising.
    return secrets.compare_digest(
        query_state.encode("utf-8", "surrogatepass"),
        cookie_state.encode("utf-8", "surrogatepass"),
    )


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


def register(app, options: Union[StrategyOptions, dict[str, Any]]) -> ClefScheme:
    """Validate options, build the scheme and attach it to app.state.clef.

    Call once at startup (api/main.py does it in the lifespan). Raises
    pydantic.ValidationError on bad options -- nothing is registered then.
    """
    if not isinstance(options, StrategyOptions):
        options = StrategyOptions.model_validate(options)
    scheme = ClefScheme(options)
    app.state.clef = scheme
    logger.info("Clef strategy registered (cookie=%s)", options.cookie_name)
    return scheme
