"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_PAGE_SIZE = 10
ACTIVITY_LOG_PAGE_SIZE = 50
UPCOMING_DEADLINE_DAYS = 7

COMPLETE_PERCENT = 100
MAX_UPLOAD_BYTES = 10 * 1024 * 1024
MAX_EVIDENCE_FILENAME = 100
MIN_PASSWORD_LENGTH = 6

# Signed URL lifetimes (seconds)
VIEW_URL_SECONDS = 1800
DOWNLOAD_URL_SECONDS = 300
DEFAULT_URL_SECONDS = 3600

PERMIT_BUCKET = "work_permit"
EVIDENCE_BUCKET = "progress_evidence"
BASTP_BUCKET = "bastp"
