from .config import DEFAULT_ALLOCATION_MODE, ENFORCE_CAPACITY_IN_HOURS_MODE, db_config_from_env

SECRET_KEY = "test-secret"

DB_CONFIG = db_config_from_env()

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
