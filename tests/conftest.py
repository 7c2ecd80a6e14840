"""
tests/conftest.py -- Shared test fixtures for ClefAuth tests.

This module provides:
  - MockClef: ExchangeClient double with call recording and error injection
  - _patch_lifespan(): registers the strategy with a MockClef, bypassing the
    real startup (which needs CLEF_APP_ID / CLEF_APP_SECRET and the network)
  - clef: a fresh MockClef per test
  - web_client: TestClient over the full ASGI app (api + web routers)
  - sealed(): seal a state value the way the server does, for cookie headers

The DEBUG env var must be set before any api/ import so get_settings()
auto-generates SECRET_KEY in dev mode rather than raising ValueError.
LOGIN_RATE_LIMIT is raised so the shared in-memory limiter never throttles
the suite.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import Any, Optional

# CRITICAL: Set env before any api/core import so get_settings() can
# auto-generate SECRET_KEY in dev mode instead of raising ValueError.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.models import CookieOptions
from auth.scheme import StrategyOptions, register
from auth.tokens import seal_state

APP_ID = "4f4baa300eae6a7532cc60d06b49e0b9"
APP_SECRET = "d0d0ba5ef23dc134305125627c45677c"
COOKIE_NAME = "hapi-clef"
COOKIE_OPTIONS = CookieOptions(password="Q3QJIcIIvKcMwG7c", secure=False, path="/", max_age=600)


# ---------------------------------------------------------------------------
# Exchange client double
# ---------------------------------------------------------------------------


class MockClef:
    """Records every exchange. Set .error to make every exchange raise it."""

    def __init__(self) -> None:
        self.error: Optional[BaseException] = None
        self.user: dict[str, Any] = {"id": "123456"}
        self.user_id = "123456"
        self.login_calls: list[Optional[str]] = []
        self.logout_calls: list[Optional[str]] = []
        self.initialized_with: Optional[tuple] = None

    def initialize(self, app_id: str, app_secret: str, **kwargs: Any) -> "MockClef":
        self.initialized_with = (app_id, app_secret, kwargs)
        return self

    async def exchange_login_code(self, code: Optional[str]) -> dict[str, Any]:
        self.login_calls.append(code)
        if self.error is not None:
            raise self.error
        return self.user

    async def exchange_logout_token(self, token: Optional[str]) -> str:
        self.logout_calls.append(token)
        if self.error is not None:
            raise self.error
        return self.user_id


def make_options(client: Any, **overrides: Any) -> StrategyOptions:
    values: dict[str, Any] = {
        "app_id": APP_ID,
        "app_secret": APP_SECRET,
        "cookie_name": COOKIE_NAME,
        "cookie_options": COOKIE_OPTIONS,
        "client": client,
    }
    values.update(overrides)
    return StrategyOptions(**values)


def sealed(value: str) -> str:
    """Return the cookie value the server would set for state `value`."""
    return seal_state(value, COOKIE_OPTIONS)


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(clef: MockClef):
    """Return an async context manager that replaces the real lifespan.

    Registers the strategy exactly as production does, but with the MockClef
    and test cookie options, so no env credentials or network are needed.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        register(app, make_options(clef))
        yield

    return test_lifespan


@pytest.fixture
def clef() -> MockClef:
    return MockClef()


@pytest.fixture
def web_client(clef: MockClef) -> Generator[TestClient, None, None]:
    """Yield a TestClient over the full app with the Clef strategy registered.

    follow_redirects=False so tests see exactly what each route returns.
    """
    app.router.lifespan_context = _patch_lifespan(clef)
    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client
