"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_ACCESS_TOKEN_TTL_SECONDS = 15 * 60
DEFAULT_REFRESH_TOKEN_TTL_SECONDS = 30 * 24 * 60 * 60
DEFAULT_QR_TOKEN_TTL_SECONDS = 5 * 60
MIN_QR_TOKEN_TTL_SECONDS = 2 * 60
MAX_QR_TOKEN_TTL_SECONDS = 10 * 60

JWT_ALGORITHM = "HS256"

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"
REFRESH_PATH = "/auth/refresh"

DEFAULT_HISTORY_LIMIT = 100

DEMO_MEMBERSHIP_DAYS = 365
