"""
Centralized constants for the spare-request notification pipeline.

Change job IDs, defaults or status values here instead of scattering literals
across services, routes and the scheduler.
"""

# Scheduler job ID (must match the id used by NotificationWorker.add_job)
NOTIFICATION_JOB_ID = "spare_notification_processor"

# server_config is a single row
SERVER_CONFIG_ID = 1

# Wait between two staggered notifications when server_config has no value
DEFAULT_NOTIFICATION_DELAY_SECONDS = 180

# A claim older than this is considered abandoned (crashed processor) and may be re-claimed
DEFAULT_CLAIM_TIMEOUT_SECONDS = 10 * 60

# Clock override cache lifetime
CLOCK_CACHE_TTL_SECONDS = 1.0

# "DB unavailable" warnings from the processor are logged at most this often
DB_ERROR_LOG_THROTTLE_SECONDS = 30

# Accept/decline links in emails stay valid this long
ACCEPT_TOKEN_TTL_HOURS = 24

# spare_requests.status
STATUS_OPEN = "open"
STATUS_FILLED = "filled"
STATUS_CANCELLED = "cancelled"

# spare_requests.notification_status (NULL = staggered notifications never started)
NOTIFICATION_IN_PROGRESS = "in_progress"
NOTIFICATION_COMPLETED = "completed"
NOTIFICATION_STOPPED = "stopped"

# spare_request_notification_deliveries.channel / kind
CHANNEL_EMAIL = "email"
CHANNEL_SMS = "sms"
KIND_SPARE_REQUEST = "spare_request"

# Outcomes returned by one processor tick (for logs and tests; no-ops are not errors)
TICK_IDLE = "idle"
TICK_COMPLETED = "completed"
TICK_CLAIM_LOST = "claim_lost"
TICK_REQUEST_BUSY = "request_busy"
TICK_REQUESTER_MISSING = "requester_missing"
TICK_MEMBER_MISSING = "member_missing"
TICK_SENT = "sent"
TICK_STOPPED = "stopped"
TICK_DB_UNAVAILABLE = "db_unavailable"
