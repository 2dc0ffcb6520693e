"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_LIMIT = 10
DEFAULT_PENDING_LIMIT = 500
DEFAULT_GEOLOCATION_TIMEOUT_SECONDS = 10.0
DEFAULT_PRESENCE_QUEUE_SIZE = 256
DEFAULT_SITES_CACHE_SECONDS = 60.0
FIELD_AGENT_GPS_DECIMALS = 3
TELEWORK_SITE = "Télétravail"
NOT_BADGED_LABEL = "Non badgé"
OFFSITE_SITE = "Hors site"
WORK_DAYS_PER_WEEK = 5
