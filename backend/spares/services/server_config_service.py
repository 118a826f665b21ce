"""Read / update the single server_config row (notification delay, test time override)."""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from spares.core.constants import DEFAULT_NOTIFICATION_DELAY_SECONDS, SERVER_CONFIG_ID
from spares.models.server_config import ServerConfig

logger = logging.getLogger(__name__)

_UNSET = object()


def get_notification_delay_seconds(db: Session, default: int = DEFAULT_NOTIFICATION_DELAY_SECONDS) -> int:
    """Configured wait between staggered notifications; default when the row or value is missing."""
    value = (
        db.query(ServerConfig.notification_delay_seconds)
        .filter(ServerConfig.id == SERVER_CONFIG_ID)
        .scalar()
    )
    return value if value is not None else default


def get_server_config(db: Session) -> dict:
    row = db.get(ServerConfig, SERVER_CONFIG_ID)
    if row is None:
        return {
            "notification_delay_seconds": DEFAULT_NOTIFICATION_DELAY_SECONDS,
            "test_current_time": None,
            "updated_at": None,
        }
    return {
        "notification_delay_seconds": row.notification_delay_seconds
        if row.notification_delay_seconds is not None
        else DEFAULT_NOTIFICATION_DELAY_SECONDS,
        "test_current_time": row.test_current_time.isoformat() if row.test_current_time else None,
        "updated_at": row.updated_at.isoformat() if row.updated_at else None,
    }


def update_server_config(
    db: Session,
    *,
    notification_delay_seconds: int | None = None,
    test_current_time: datetime | None | object = _UNSET,
) -> dict:
    """Upsert the config row. Pass test_current_time=None to clear the override.

    Callers holding a Clock must call clock.invalidate() afterwards.
    """
    if notification_delay_seconds is not None and notification_delay_seconds < 1:
        raise ValueError("notification_delay_seconds must be at least 1")
    row = db.get(ServerConfig, SERVER_CONFIG_ID)
    if row is None:
        row = ServerConfig(id=SERVER_CONFIG_ID, notification_delay_seconds=DEFAULT_NOTIFICATION_DELAY_SECONDS)
        db.add(row)
    if notification_delay_seconds is not None:
        row.notification_delay_seconds = notification_delay_seconds
    if test_current_time is not _UNSET:
        row.test_current_time = test_current_time
    db.commit()
    db.refresh(row)
    logger.info(
        "server_config updated: delay=%ss test_current_time=%s",
        row.notification_delay_seconds,
        row.test_current_time,
    )
    return get_server_config(db)
