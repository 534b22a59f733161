"""Internal constants shared across the library."""

APP_VERSION = "v0.1.0-sync-fix"

# ------------------------------------------------------------------
# Local store keys
# ------------------------------------------------------------------

TRIP_STORAGE_KEY = "wanderSync_lifestyle_v4_final"
PENDING_SYNC_KEY = "wanderSync_pending_sync"
WEATHER_CACHE_PREFIX = "ws_weather_"
WEATHER_COOLDOWN_KEY = "ws_weather_cooldown"

# ------------------------------------------------------------------
# Trip defaults
# ------------------------------------------------------------------

DEFAULT_DOCUMENT_ID = "shared-trip-2026"
DEFAULT_TRIP_NAME = "My Adventure"
DEFAULT_BUDGET = 50000.0
DEFAULT_HEADER_IMAGE_POSITION = 50

# ------------------------------------------------------------------
# Timing (seconds)
# ------------------------------------------------------------------

PUSH_DEBOUNCE_SECONDS = 2.0
WEATHER_CACHE_TTL_SECONDS = 4 * 60 * 60
WEATHER_COOLDOWN_SECONDS = 15 * 60
WEATHER_INITIAL_RETRY_DELAY = 3.0
WEATHER_MAX_RETRIES = 1

MQTT_TOPIC_PREFIX = "wandersync/trips"
WEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
