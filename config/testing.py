import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "badge_db_test"),
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

GEOLOCATION_TIMEOUT_SECONDS = 1.0
TELEWORK_SITE = "Télétravail"
DEFAULT_WEEKLY_HOURS = 35.0
PRESENCE_QUEUE_SIZE = 16
SITES_CACHE_SECONDS = 0
CALLER_ADDRESS = None
