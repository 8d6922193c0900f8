import os

from config.config import approval_levels_from_env, db_config_from_env, env_flag

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = db_config_from_env(default_password="123456")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

APPROVAL_LEVELS = approval_levels_from_env()

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "1")
# Optional: also load the demo org chart on startup
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")
