"""
Staggered notification queue for spare requests.

Building a queue puts the request in notification_status = in_progress with
next_notification_at = now; the processor then sends to one candidate per tick,
waiting server_config.notification_delay_seconds between candidates.

Candidate ranking is the caller's business: member_ids arrive in priority order.
"""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from spares.core.constants import (
    NOTIFICATION_COMPLETED,
    NOTIFICATION_IN_PROGRESS,
    STATUS_OPEN,
)
from spares.core.errors import NotificationStateError, SpareRequestNotFound
from spares.models.notification_queue_item import NotificationQueueItem
from spares.models.spare_request import SpareRequest
from spares.services.clock import Clock

logger = logging.getLogger(__name__)


def get_spare_request(db: Session, request_id: int) -> SpareRequest:
    row = db.get(SpareRequest, request_id)
    if row is None:
        raise SpareRequestNotFound(request_id)
    return row


def _dedupe(member_ids: list[int]) -> list[int]:
    seen: set[int] = set()
    out = []
    for member_id in member_ids:
        if member_id in seen:
            continue
        seen.add(member_id)
        out.append(member_id)
    return out


def build_notification_queue(
    db: Session,
    spare_request: SpareRequest,
    member_ids: list[int],
    *,
    clock: Clock,
) -> int:
    """Queue member_ids (priority order) and start staggered notifications. Returns queued count."""
    if spare_request.status != STATUS_OPEN:
        raise NotificationStateError("Can only queue notifications for open requests")
    now = clock.now_authoritative()
    ordered = _dedupe(member_ids)
    if not ordered:
        spare_request.notification_status = NOTIFICATION_COMPLETED
        spare_request.next_notification_at = None
        db.commit()
        logger.info("No candidates for spare request %s; notifications completed", spare_request.id)
        return 0

    db.add_all(
        NotificationQueueItem(spare_request_id=spare_request.id, member_id=member_id, queue_order=index)
        for index, member_id in enumerate(ordered)
    )
    spare_request.notification_status = NOTIFICATION_IN_PROGRESS
    spare_request.next_notification_at = now
    spare_request.notification_paused = False
    spare_request.notifications_sent_at = now
    db.commit()
    logger.info(
        "Created notification queue with %s members for spare request %s (generation %s)",
        len(ordered),
        spare_request.id,
        spare_request.notification_generation,
    )
    return len(ordered)


def restart_notifications(
    db: Session,
    spare_request: SpareRequest,
    member_ids: list[int],
    *,
    clock: Clock,
) -> int:
    """
    Start a fresh notification round: bump notification_generation, drop the previous
    round's queue and queue member_ids again. Delivery ledger rows from older generations
    are kept; the new generation lets the same members be notified once more.
    """
    if spare_request.status != STATUS_OPEN:
        raise NotificationStateError("Can only restart notifications for open requests")
    if spare_request.notification_status == NOTIFICATION_IN_PROGRESS:
        raise NotificationStateError("Notifications are already in progress")
    db.query(NotificationQueueItem).filter(
        NotificationQueueItem.spare_request_id == spare_request.id
    ).delete(synchronize_session=False)
    spare_request.notification_generation = (spare_request.notification_generation or 0) + 1
    db.flush()
    logger.info(
        "Restarting notifications for spare request %s at generation %s",
        spare_request.id,
        spare_request.notification_generation,
    )
    return build_notification_queue(db, spare_request, member_ids, clock=clock)


def _require_in_progress(spare_request: SpareRequest, action: str) -> None:
    if spare_request.status != STATUS_OPEN:
        raise NotificationStateError(f"Can only {action} notifications for open requests")
    if spare_request.notification_status != NOTIFICATION_IN_PROGRESS:
        raise NotificationStateError("Notifications are not in progress")


def pause_notifications(db: Session, spare_request: SpareRequest) -> None:
    _require_in_progress(spare_request, "pause")
    spare_request.notification_paused = True
    db.commit()


def unpause_notifications(db: Session, spare_request: SpareRequest, *, clock: Clock) -> None:
    """Resume and make the request due immediately."""
    _require_in_progress(spare_request, "unpause")
    spare_request.notification_paused = False
    spare_request.next_notification_at = clock.now_authoritative()
    db.commit()


def notification_progress(db: Session, spare_request: SpareRequest) -> dict:
    total = (
        db.query(func.count(NotificationQueueItem.id))
        .filter(NotificationQueueItem.spare_request_id == spare_request.id)
        .scalar()
    )
    notified = (
        db.query(func.count(NotificationQueueItem.id))
        .filter(
            NotificationQueueItem.spare_request_id == spare_request.id,
            NotificationQueueItem.notified_at.isnot(None),
        )
        .scalar()
    )
    nxt = spare_request.next_notification_at
    return {
        "notification_status": spare_request.notification_status,
        "total_members": int(total or 0),
        "notified_members": int(notified or 0),
        "next_notification_at": nxt.isoformat() if nxt else None,
        "notification_paused": bool(spare_request.notification_paused),
        "notification_generation": spare_request.notification_generation,
    }
