import os

_SETTINGS_BY_ENV = {
    "prod": "config.production",
    "production": "config.production",
    "test": "config.testing",
    "testing": "config.testing",
}


def get_settings_module() -> str:
    # HR_APPROVALS_SETTINGS names a module outright; otherwise APP_ENV picks one.
    explicit = (os.getenv("HR_APPROVALS_SETTINGS") or "").strip()
    if explicit:
        return explicit

    env = os.getenv("APP_ENV", "development").strip().lower()
    return _SETTINGS_BY_ENV.get(env, "config.development")
