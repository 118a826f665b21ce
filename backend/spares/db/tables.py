"""
Single source of truth for database tables that exist after migrations (001–003).

Use these names when writing raw SQL (e.g. TRUNCATE).
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "members",
    "leagues",
    "spare_requests",
    "server_config",
    "spare_request_notification_queue",
    "spare_request_notification_deliveries",
)
