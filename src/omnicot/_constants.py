"""Internal constants shared across the library."""

from datetime import timedelta

COT_VERSION = "2.0"
DEFAULT_HOW = "m-g"
SELF_REPORT_TYPE = "a-f-G-E-S"

# ------------------------------------------------------------------
# Point defaults for optional attributes (metres)
# ------------------------------------------------------------------

DEFAULT_HAE = 0.0
DEFAULT_CE = 10.0
DEFAULT_LE = 10.0

# ------------------------------------------------------------------
# Marker store defaults, as shipped by the mobile client
# ------------------------------------------------------------------

DEFAULT_STALE_CHECK_INTERVAL_MS = 5_000
DEFAULT_AUTO_REMOVE_STALE_AFTER_MS = 60_000
DEFAULT_MAX_MARKERS = 10_000

# Outbound reports go stale after five minutes.
DEFAULT_REPORT_STALE_AFTER = timedelta(minutes=5)

# Raw messages are clipped to this many characters in log records.
LOG_CLIP_CHARS = 256

COT_TIME_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
