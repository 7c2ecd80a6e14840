"""Unit tests for core/config.py and the settings -> StrategyOptions mapping.

Covers:
- SECRET_KEY policy: dev mode generates, production refuses, short keys rejected
- Clef defaults (cookie name, API base, exchange timeout)
- api.main.strategy_options(): missing Clef credentials fail before startup
"""

import pytest
from pydantic import ValidationError

from api.main import strategy_options
from core.config import Settings

_KEY = "k" * 32


def _settings(**values) -> Settings:
    return Settings(_env_file=None, **values)


class TestSecretKeyPolicy:
    def test_debug_generates_key(self):
        settings = _settings(debug=True, secret_key="")
        assert len(settings.secret_key) >= 32

    def test_production_requires_key(self):
        with pytest.raises(ValidationError, match="SECRET_KEY is required"):
            _settings(debug=False, secret_key="")

    def test_short_key_rejected(self):
        with pytest.raises(ValidationError, match="at least 32 characters"):
            _settings(debug=True, secret_key="short")


class TestClefDefaults:
    def test_defaults(self):
        settings = _settings(secret_key=_KEY)
        assert settings.clef_cookie_name == "hapi-clef"
        assert settings.clef_api_base == "https://clef.io/api/v1"
        assert settings.clef_exchange_timeout == 10.0

    def test_env_vars_map_to_fields(self, monkeypatch):
        monkeypatch.setenv("CLEF_APP_ID", "env-app")
        monkeypatch.setenv("CLEF_COOKIE_NAME", "my-state")
        settings = _settings(secret_key=_KEY)
        assert settings.clef_app_id == "env-app"
        assert settings.clef_cookie_name == "my-state"


class TestStrategyOptionsFromSettings:
    def test_maps_settings(self):
        settings = _settings(
            secret_key=_KEY,
            secure_cookies=True,
            clef_app_id="app",
            clef_app_secret="secret",
            clef_api_base="http://clef.test/api/v1",
            clef_exchange_timeout=3,
        )
        options = strategy_options(settings)
        assert options.app_id == "app"
        assert options.app_secret.get_secret_value() == "secret"
        assert options.cookie_options.password == _KEY
        assert options.cookie_options.secure is True
        assert options.cookie_options.max_age == settings.state_cookie_max_age
        assert options.client_options == {"api_base": "http://clef.test/api/v1"}
        assert options.exchange_timeout == 3

    @pytest.mark.parametrize("missing", ["clef_app_id", "clef_app_secret"])
    def test_missing_clef_credentials_fail(self, missing):
        values = {"secret_key": _KEY, "clef_app_id": "app", "clef_app_secret": "secret", missing: ""}
        with pytest.raises(ValidationError):
            strategy_options(_settings(**values))
