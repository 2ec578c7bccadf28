"""Values shared by every environment, read from the process environment."""
import os


def env_flag(name: str, default: str = "0") -> bool:
    return bool(int(os.getenv(name, default)))


def db_config_from_env(*, default_password: str = "") -> dict:
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "3306")),
        "user": os.getenv("DB_USER", "root"),
        "password": os.getenv("DB_PASSWORD", default_password),
        "database": os.getenv("DB_NAME", "resource_allocation"),
    }


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# 'hours' or 'percentage'; used until an admin stores a mode in system_settings.
DEFAULT_ALLOCATION_MODE = os.getenv("DEFAULT_ALLOCATION_MODE", "hours")

# Hours mode only derives percentages for audit by default. Set to 1 to apply
# the 100% ceiling in hours mode as well.
ENFORCE_CAPACITY_IN_HOURS_MODE = env_flag("ENFORCE_CAPACITY_IN_HOURS_MODE")
