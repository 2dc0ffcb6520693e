import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "badge_db"),
}

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

GEOLOCATION_TIMEOUT_SECONDS = float(os.getenv("GEOLOCATION_TIMEOUT_SECONDS", "10"))
TELEWORK_SITE = os.getenv("TELEWORK_SITE", "Télétravail")
# Contracted hours used when a user row has none; empty disables the fallback
_weekly_hours = os.getenv("DEFAULT_WEEKLY_HOURS", "35")
DEFAULT_WEEKLY_HOURS = float(_weekly_hours) if _weekly_hours else None
PRESENCE_QUEUE_SIZE = int(os.getenv("PRESENCE_QUEUE_SIZE", "256"))
# Seconds the authorized sites table is cached between store reads
SITES_CACHE_SECONDS = float(os.getenv("SITES_CACHE_SECONDS", "60"))
# Fixed kiosk address; when unset the HTTP request address is used
CALLER_ADDRESS = os.getenv("CALLER_ADDRESS") or None
