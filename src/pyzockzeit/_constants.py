"""Internal constants shared across the library."""

DEFAULT_NAME = "ZockZeit"
USER_AGENT = "pyzockzeit"

# ------------------------------------------------------------------
# Measurement bounds (minutes, shown as °C on the thermostat)
# ------------------------------------------------------------------

DEFAULT_MIN_TEMP = 0
DEFAULT_MAX_TEMP = 240  # 4 hours

# ------------------------------------------------------------------
# Poll/request timing.  Intervals are configured in seconds, the
# request timeout in milliseconds; everything is stored as ms.
# ------------------------------------------------------------------

DEFAULT_ELAPSED_POLL_S = 5
ELAPSED_POLL_MIN_S = 1
ELAPSED_POLL_MAX_S = 300

DEFAULT_TARGET_POLL_S = 30
TARGET_POLL_MIN_S = 5
TARGET_POLL_MAX_S = 3600

DEFAULT_REQUEST_TIMEOUT_MS = 5000
REQUEST_TIMEOUT_MIN_MS = 1000
REQUEST_TIMEOUT_MAX_MS = 30000

# ------------------------------------------------------------------
# Reset follow-ups
# ------------------------------------------------------------------

RESET_SWITCH_DELAY_S = 1.0
RESET_REPOLL_DELAY_S = 2.0

# Placeholders substituted in the set-target URL template.
TARGET_PLACEHOLDERS: tuple[str, ...] = ("{value}", "{kovalue}")
