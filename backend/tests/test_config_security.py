"""
Security config guard tests.

Validates that production/staging environments fail fast on insecure
settings, while development stays permissive.
"""
from __future__ import annotations

import pytest

from backend.web.config import AppConfig, ensure_secure_config_on_startup, load_config

SAFE_PROD = {
    "EDUMANAGE_ENV": "prod",
    "STORE_BACKEND": "postgres",
    "DATABASE_URL": "postgresql://app:pw@db:5432/edumanage?sslmode=require",
    "PAYMENTS_API_KEY": "sk_live_real",
    "EDUMANAGE_ALLOW_HEADER_IDENTITY": "true",
}


def test_load_config_defaults():
    cfg = load_config({})
    assert cfg.env == "dev"
    assert cfg.store_backend == "postgres"
    assert cfg.payments_currency == "usd"
    assert cfg.store_statement_timeout_ms == 5000
    assert cfg.cors_allow_origins == ()
    assert cfg.allow_header_identity is False


def test_load_config_parses_values():
    cfg = load_config(
        {
            "STORE_POOL_MAX": "20",
            "STORE_STATEMENT_TIMEOUT_MS": "oops",
            "PAYMENTS_TIMEOUT_SECONDS": "2.5",
            "CORS_ALLOW_ORIGINS": "https://a.example, https://b.example ,",
            "PAYMENTS_CURRENCY": "EUR",
        }
    )
    assert cfg.store_pool_max == 20
    assert cfg.store_statement_timeout_ms == 5000
    assert cfg.payments_timeout_seconds == 2.5
    assert cfg.cors_allow_origins == ("https://a.example", "https://b.example")
    assert cfg.payments_currency == "eur"


def test_prod_with_safe_settings_starts():
    ensure_secure_config_on_startup(load_config(SAFE_PROD))


def test_dev_is_permissive():
    ensure_secure_config_on_startup(AppConfig(env="dev", store_backend="memory"))


@pytest.mark.parametrize(
    "override",
    [
        {"STORE_BACKEND": "memory"},
        {"DATABASE_URL": ""},
        {"DATABASE_URL": "postgresql://app:pw@db/edumanage?sslmode=disable"},
        {"PAYMENTS_API_KEY": ""},
        {"PAYMENTS_API_KEY": "CHANGE_ME"},
        {"PAYMENTS_API_BASE": "http://pay.example"},
        {"EDUMANAGE_ALLOW_HEADER_IDENTITY": "false"},
    ],
)
def test_prod_guard_refuses_insecure_settings(override):
    env = {**SAFE_PROD, **override}
    with pytest.raises(SystemExit):
        ensure_secure_config_on_startup(load_config(env))


def test_staging_counts_as_prod_like():
    with pytest.raises(SystemExit):
        ensure_secure_config_on_startup(load_config({**SAFE_PROD, "EDUMANAGE_ENV": "staging", "STORE_BACKEND": "memory"}))


def test_guard_reads_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EDUMANAGE_ENV", "production")
    monkeypatch.setenv("STORE_BACKEND", "memory")
    with pytest.raises(SystemExit):
        ensure_secure_config_on_startup()
