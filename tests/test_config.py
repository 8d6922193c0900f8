from __future__ import annotations

import pytest

from config import get_settings_module
from config.config import approval_levels_from_env, db_config_from_env, env_flag
from src.hr_approvals.hr_approvals.core.constants import DEFAULT_APPROVAL_LEVELS


@pytest.mark.parametrize(
    "app_env, expected",
    [
        ("production", "config.production"),
        ("PROD", "config.production"),
        ("testing", "config.testing"),
        ("test", "config.testing"),
        ("staging", "config.development"),
    ],
)
def test_settings_module_follows_app_env(monkeypatch, app_env, expected):
    monkeypatch.delenv("HR_APPROVALS_SETTINGS", raising=False)
    monkeypatch.setenv("APP_ENV", app_env)

    assert get_settings_module() == expected


def test_explicit_settings_module_wins(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("HR_APPROVALS_SETTINGS", "config.testing")

    assert get_settings_module() == "config.testing"


def test_approval_levels_can_be_overridden(monkeypatch):
    monkeypatch.setenv("APPROVAL_LEVELS_LEAVE", "2")
    monkeypatch.delenv("APPROVAL_LEVELS_OVERTIME", raising=False)
    monkeypatch.delenv("APPROVAL_LEVELS_CORRECTION", raising=False)

    assert approval_levels_from_env() == {"leave": 2, "overtime": 1, "correction": 2}


def test_approval_levels_default_to_engine_defaults(monkeypatch):
    for name in ("APPROVAL_LEVELS_LEAVE", "APPROVAL_LEVELS_OVERTIME", "APPROVAL_LEVELS_CORRECTION"):
        monkeypatch.delenv(name, raising=False)

    assert approval_levels_from_env() == DEFAULT_APPROVAL_LEVELS

    monkeypatch.setenv("APPROVAL_LEVELS_OVERTIME", "3")
    assert approval_levels_from_env()["overtime"] == 3
    assert DEFAULT_APPROVAL_LEVELS["overtime"] == 1


def test_db_config_reads_environment(monkeypatch):
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_PORT", "3307")
    monkeypatch.delenv("DB_PASSWORD", raising=False)
    monkeypatch.delenv("DB_NAME", raising=False)

    cfg = db_config_from_env(default_password="secret")

    assert cfg["host"] == "db.internal"
    assert cfg["port"] == 3307
    assert cfg["password"] == "secret"
    assert cfg["database"] == "hr_approvals"


def test_env_flag(monkeypatch):
    monkeypatch.setenv("AUTO_INIT_DB", "1")
    monkeypatch.delenv("AUTO_SEED_DB", raising=False)

    assert env_flag("AUTO_INIT_DB") is True
    assert env_flag("AUTO_SEED_DB", "0") is False
