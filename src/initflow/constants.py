"""Default configuration constants for initflow."""

DEFAULT_BASE_URL = "https://api.initflow.com"

# HTTP settings (milliseconds)
DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_RETRY_DELAY_MS = 1_000
DEFAULT_MAX_RETRIES = 3

# Default retry status codes
DEFAULT_RETRY_STATUS_CODES = (408, 429, 500, 502, 503, 504)

# Local credential store
DEFAULT_STORE_DIR = "~/.initflow"
DEFAULT_STORE_FILENAME = "credentials.json"
