"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TOKEN_HOURS = 24 * 7
DEFAULT_OTP_TTL_SECONDS = 5 * 60
DEFAULT_OTP_MAX_ATTEMPTS = 3
DEFAULT_OTP_SWEEP_SECONDS = 10 * 60
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024

MIN_PASSWORD_LENGTH = 6
ALL_SITES = "all"
