"""Internal constants shared across the library."""

BASE_URL = "https://mitr-api.onrender.com"
USER_AGENT = "pymitr"
API_KEY_HEADER = "x-api-key"

DEFAULT_DEVICE_ID = "device_1"
DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_REQUEST_TIMEOUT = 30.0

# HTTP status the data endpoint uses to signal "device is not being tracked".
FORBIDDEN_STATUS = 403

# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

STATUS_ENDPOINT = "/api/device/status/{device_id}"
DATA_ENDPOINT = "/api/device/data/{device_id}"
TRIGGER_START_ENDPOINT = "/api/device/trigger/start"
TRIGGER_STOP_ENDPOINT = "/api/device/trigger/stop"

# Fallback rejection reasons when the service gives none.
START_REJECTED_REASON = "Failed to trigger device"
STOP_REJECTED_REASON = "Failed to stop trigger"
