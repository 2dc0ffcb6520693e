import os

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "badge_db"),
}

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

GEOLOCATION_TIMEOUT_SECONDS = float(os.getenv("GEOLOCATION_TIMEOUT_SECONDS", "10"))
TELEWORK_SITE = os.getenv("TELEWORK_SITE", "Télétravail")
DEFAULT_WEEKLY_HOURS = float(os.environ["DEFAULT_WEEKLY_HOURS"]) if os.getenv("DEFAULT_WEEKLY_HOURS") else None
PRESENCE_QUEUE_SIZE = int(os.getenv("PRESENCE_QUEUE_SIZE", "256"))
# Seconds the authorized sites table is cached between store reads
SITES_CACHE_SECONDS = float(os.getenv("SITES_CACHE_SECONDS", "60"))
CALLER_ADDRESS = os.getenv("CALLER_ADDRESS") or None
