from __future__ import annotations

import pytest

from traceledger.core.config import AppEnv, Settings, load_settings

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "PORT",
    "LEDGER_ADMIN",
    "ROLE_POLICY",
    "VERIFY_BASE_URL",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ---- valid values ----


def test_load_settings_defaults(clean_env: pytest.MonkeyPatch) -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.port == 8000
    assert settings.ledger_admin == "0xadmin"
    assert settings.role_policy == "strict"
    assert settings.verify_base_url == "http://localhost:5173"


def test_load_settings_respects_env_vars(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("APP_ENV", "prod")
    clean_env.setenv("LOG_LEVEL", "error")
    clean_env.setenv("LOG_JSON", "true")
    clean_env.setenv("PORT", "9000")
    clean_env.setenv("LEDGER_ADMIN", "0xoperator")
    clean_env.setenv("ROLE_POLICY", "lenient")
    clean_env.setenv("VERIFY_BASE_URL", "https://trace.example/")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "error"
    assert settings.log_json is True
    assert settings.port == 9000
    assert settings.ledger_admin == "0xoperator"
    assert settings.role_policy == "lenient"
    assert settings.verify_base_url == "https://trace.example"


def test_load_settings_normalizes_case_and_whitespace(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("APP_ENV", "  PROD ")
    clean_env.setenv("LOG_LEVEL", "DEBUG")
    clean_env.setenv("ROLE_POLICY", " Minimal ")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "debug"
    assert settings.role_policy == "minimal"


# ---- invalid values ----


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("APP_ENV", "staging", "APP_ENV must be dev|test|prod"),
        ("APP_ENV", "", "APP_ENV must be dev|test|prod"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be debug|info|warning|error"),
        ("LOG_JSON", "maybe", "LOG_JSON must be a boolean"),
        ("PORT", "eighty", "PORT must be an integer"),
        ("LEDGER_ADMIN", "   ", "LEDGER_ADMIN must be non-empty"),
        ("ROLE_POLICY", "paranoid", "ROLE_POLICY must be strict|lenient|minimal"),
    ],
)
def test_load_settings_rejects_invalid_values(
    clean_env: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    clean_env.setenv(name, value)
    with pytest.raises(ValueError, match=message.replace("|", r"\|")):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        ledger_admin="0xadmin",
        role_policy="strict",
        verify_base_url="http://localhost:5173",
    )


@pytest.mark.parametrize("env", ["dev", "test", "prod"])
def test_settings_env_flags(env: AppEnv) -> None:
    s = _make_settings(env)
    assert (s.is_dev, s.is_test, s.is_prod) == (env == "dev", env == "test", env == "prod")


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.app_env = "prod"  # type: ignore[misc]
