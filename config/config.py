"""Environment readers shared by the per-environment settings modules."""

import os

from src.hr_approvals.hr_approvals.core.constants import DEFAULT_APPROVAL_LEVELS


def env_flag(name: str, default: str = "0") -> bool:
    return bool(int(os.getenv(name, default)))


def db_config_from_env(*, default_password: str = "") -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", "hr_approvals"),
    }


def approval_levels_from_env() -> dict:
    # APPROVAL_LEVELS_LEAVE=2 overrides the leave chain depth, and so on.
    levels = dict(DEFAULT_APPROVAL_LEVELS)
    for request_type in levels:
        raw = os.getenv(f"APPROVAL_LEVELS_{request_type.upper()}")
        if raw:
            levels[request_type] = int(raw)
    return levels
