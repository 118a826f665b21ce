"""Fill / cancel a spare request. Leaving "open" stops staggered notifications right away."""
import logging

from sqlalchemy.orm import Session

from spares.core.constants import (
    NOTIFICATION_STOPPED,
    STATUS_CANCELLED,
    STATUS_FILLED,
    STATUS_OPEN,
)
from spares.core.errors import NotificationStateError
from spares.models.spare_request import SpareRequest
from spares.services.clock import Clock

logger = logging.getLogger(__name__)


def _stop_notifications(spare_request: SpareRequest) -> None:
    # Processor re-checks status after an in-flight send, so a concurrent tick also ends in "stopped"
    spare_request.notification_status = NOTIFICATION_STOPPED
    spare_request.next_notification_at = None


def mark_request_filled(db: Session, spare_request: SpareRequest, member_id: int, *, clock: Clock) -> None:
    if spare_request.status != STATUS_OPEN:
        raise NotificationStateError("This spare request is no longer open")
    spare_request.status = STATUS_FILLED
    spare_request.filled_by_member_id = member_id
    spare_request.filled_at = clock.now_authoritative()
    _stop_notifications(spare_request)
    db.commit()
    logger.info("Spare request %s filled by member %s", spare_request.id, member_id)


def cancel_request(db: Session, spare_request: SpareRequest, member_id: int) -> None:
    if spare_request.status != STATUS_OPEN:
        raise NotificationStateError("This spare request is no longer open")
    spare_request.status = STATUS_CANCELLED
    spare_request.cancelled_by_member_id = member_id
    _stop_notifications(spare_request)
    db.commit()
    logger.info("Spare request %s cancelled by member %s", spare_request.id, member_id)
