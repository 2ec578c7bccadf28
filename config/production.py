import os

from .config import DEFAULT_ALLOCATION_MODE, ENFORCE_CAPACITY_IN_HOURS_MODE, LOG_LEVEL, db_config_from_env, env_flag

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = db_config_from_env()

DEBUG = False

AUTO_INIT_DB = env_flag("AUTO_INIT_DB")
