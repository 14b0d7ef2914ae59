"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_TTL_HOURS = 24
DEFAULT_HISTORY_LIMIT = 30
DEFAULT_PAGE_LIMIT = 50
MAX_PAGE_LIMIT = 100
MIN_PASSWORD_LENGTH = 6
TEMP_PASSWORD_LENGTH = 10
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
DEFAULT_EMAIL_TIMEOUT_SECONDS = 10

EMPLOYEE_ID_PATTERN = r"^\d{6}$"

ALLOWED_UPLOAD_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    }
)
