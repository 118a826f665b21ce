"""
Staggered spare-request notifications: one candidate per tick.

Each tick (NotificationWorker runs one every few seconds):
  1. pick the most overdue request that is open, in_progress, not paused and due;
  2. if another item of that request is under a live claim, leave it alone this tick;
     otherwise pick its earliest queue item not yet notified and not under a live claim;
     none left -> notification_status = completed;
  3. claim the item with a conditional UPDATE (losing the race ends the tick);
  4. email / SMS the member, each channel through the delivery ledger;
  5. mark the item notified;
  6. re-read the request status: filled/cancelled meanwhile -> stopped,
     otherwise schedule the next candidate after the configured delay.

Several processes may run this against the same database. Conditional UPDATEs are the
only synchronization; each step commits on its own so no transaction is held open
across the (slow) provider calls. A claim left by a crashed process expires after
claim_timeout.
"""
import logging
import time
from datetime import timedelta
from typing import Callable

from sqlalchemy import exists, or_, update
from sqlalchemy.orm import Session, aliased

from spares.core.constants import (
    CHANNEL_EMAIL,
    CHANNEL_SMS,
    DB_ERROR_LOG_THROTTLE_SECONDS,
    DEFAULT_CLAIM_TIMEOUT_SECONDS,
    DEFAULT_NOTIFICATION_DELAY_SECONDS,
    KIND_SPARE_REQUEST,
    NOTIFICATION_COMPLETED,
    NOTIFICATION_IN_PROGRESS,
    NOTIFICATION_STOPPED,
    STATUS_OPEN,
    TICK_CLAIM_LOST,
    TICK_COMPLETED,
    TICK_DB_UNAVAILABLE,
    TICK_IDLE,
    TICK_MEMBER_MISSING,
    TICK_REQUEST_BUSY,
    TICK_REQUESTER_MISSING,
    TICK_SENT,
    TICK_STOPPED,
)
from spares.core.errors import is_transient_db_error
from spares.models.league import League
from spares.models.member import Member
from spares.models.notification_queue_item import NotificationQueueItem
from spares.models.spare_request import SpareRequest
from spares.services.clock import Clock
from spares.services.delivery_ledger import DeliveryKey, send_once_with_claim
from spares.services.email_notify import SpareRequestDetails
from spares.services.server_config_service import get_notification_delay_seconds

logger = logging.getLogger(__name__)


def _claimable(claim_expired_before):
    """Queue items that may be (re)claimed: not notified, and unclaimed or claim expired."""
    return (
        NotificationQueueItem.notified_at.is_(None),
        or_(
            NotificationQueueItem.claimed_at.is_(None),
            NotificationQueueItem.claimed_at < claim_expired_before,
        ),
    )


def _live_claim_on(request_id, claim_expired_before):
    """Some item of the request is claimed, not yet notified, and the claim has not expired."""
    other = aliased(NotificationQueueItem)
    return exists().where(
        other.spare_request_id == request_id,
        other.notified_at.is_(None),
        other.claimed_at.is_not(None),
        other.claimed_at >= claim_expired_before,
    )


class NotificationProcessor:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock,
        transport,
        *,
        claim_timeout: timedelta = timedelta(seconds=DEFAULT_CLAIM_TIMEOUT_SECONDS),
        default_delay_seconds: int = DEFAULT_NOTIFICATION_DELAY_SECONDS,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._session_factory = session_factory
        self.clock = clock
        self.transport = transport
        self.claim_timeout = claim_timeout
        self.default_delay_seconds = default_delay_seconds
        self._monotonic = monotonic
        self._last_db_error_log_at: float | None = None

    # --- outer handler -----------------------------------------------------

    def run_tick(self) -> str:
        """
        One scheduler tick. Store outages are swallowed (warning at most once per
        DB_ERROR_LOG_THROTTLE_SECONDS) and retried on the next tick; anything else is
        logged and re-raised to the scheduler's error listener.
        """
        try:
            return self.process_next_notification()
        except Exception as e:
            if is_transient_db_error(e):
                now = self._monotonic()
                last = self._last_db_error_log_at
                if last is None or now - last > DB_ERROR_LOG_THROTTLE_SECONDS:
                    self._last_db_error_log_at = now
                    logger.warning("Notification processor: DB unavailable; will retry. (%s)", e)
                return TICK_DB_UNAVAILABLE
            logger.exception("Notification processor tick failed: %s", e)
            raise

    # --- one tick ----------------------------------------------------------

    def process_next_notification(self) -> str:
        db = self._session_factory()
        try:
            return self._process(db)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _process(self, db: Session) -> str:
        now = self.clock.now_authoritative()

        spare_request = (
            db.query(SpareRequest)
            .filter(
                SpareRequest.status == STATUS_OPEN,
                SpareRequest.notification_status == NOTIFICATION_IN_PROGRESS,
                SpareRequest.notification_paused.is_(False),
                or_(
                    SpareRequest.next_notification_at.is_(None),
                    SpareRequest.next_notification_at <= now,
                ),
            )
            .order_by(SpareRequest.next_notification_at.asc().nulls_first(), SpareRequest.id.asc())
            .limit(1)
            .first()
        )
        if spare_request is None:
            return TICK_IDLE
        request_id = spare_request.id

        claim_expired_before = now - self.claim_timeout
        # One member per request at a time; also keeps an in-flight last item from reading as "completed".
        if db.query(_live_claim_on(request_id, claim_expired_before)).scalar():
            logger.debug("Spare request %s has a notification in flight", request_id)
            return TICK_REQUEST_BUSY

        item = (
            db.query(NotificationQueueItem)
            .filter(
                NotificationQueueItem.spare_request_id == request_id,
                *_claimable(claim_expired_before),
            )
            .order_by(NotificationQueueItem.queue_order.asc(), NotificationQueueItem.id.asc())
            .limit(1)
            .first()
        )
        if item is None:
            self._finish(db, request_id, NOTIFICATION_COMPLETED)
            logger.info("Notification queue exhausted for spare request %s; completed", request_id)
            return TICK_COMPLETED
        item_id = item.id
        member_id = item.member_id

        claimed = db.execute(
            update(NotificationQueueItem)
            .where(
                NotificationQueueItem.id == item_id,
                *_claimable(claim_expired_before),
                ~_live_claim_on(request_id, claim_expired_before),
            )
            .values(claimed_at=now)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        if claimed.rowcount == 0:
            logger.debug("Queue item %s claimed by another processor", item_id)
            return TICK_CLAIM_LOST

        requester = db.get(Member, spare_request.requester_id)
        if requester is None:
            logger.error("Requester %s not found for spare request %s", spare_request.requester_id, request_id)
            self._release_claim(db, item_id)
            return TICK_REQUESTER_MISSING
        member = db.get(Member, member_id)
        if member is None:
            logger.error("Member %s not found for queue item %s (request %s)", member_id, item_id, request_id)
            self._release_claim(db, item_id)
            return TICK_MEMBER_MISSING

        logger.info("Sending notification to member %s (%s) for spare request %s", member.id, member.name, request_id)
        try:
            self._deliver(db, spare_request, requester, member)
        except Exception:
            db.rollback()
            self._release_claim(db, item_id)
            raise

        db.execute(
            update(NotificationQueueItem)
            .where(NotificationQueueItem.id == item_id, NotificationQueueItem.notified_at.is_(None))
            .values(notified_at=now, claimed_at=None)
            .execution_options(synchronize_session=False)
        )
        db.commit()

        # Filled or cancelled while we were sending?
        status = db.query(SpareRequest.status).filter(SpareRequest.id == request_id).scalar()
        if status != STATUS_OPEN:
            self._finish(db, request_id, NOTIFICATION_STOPPED)
            logger.info("Spare request %s is %s; stopped notifications", request_id, status)
            return TICK_STOPPED

        delay = get_notification_delay_seconds(db, default=self.default_delay_seconds)
        next_at = now + timedelta(seconds=delay)
        db.execute(
            update(SpareRequest)
            .where(SpareRequest.id == request_id)
            .values(next_notification_at=next_at)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        logger.info("Next notification for spare request %s at %s", request_id, next_at.isoformat())
        return TICK_SENT

    # --- helpers -----------------------------------------------------------

    def _deliver(self, db: Session, spare_request: SpareRequest, requester: Member, member: Member) -> None:
        """Email and/or SMS one member, each channel at most once per notification generation."""
        generation = spare_request.notification_generation or 0

        def key(channel: str) -> DeliveryKey:
            return DeliveryKey(spare_request.id, member.id, generation, channel, KIND_SPARE_REQUEST)

        if member.email:
            league_name = None
            if spare_request.league_id:
                league_name = db.query(League.name).filter(League.id == spare_request.league_id).scalar()
            details = SpareRequestDetails(
                requested_for_name=spare_request.requested_for_name,
                game_date=spare_request.game_date,
                game_time=spare_request.game_time,
                league_name=league_name,
                position=spare_request.position,
                message=spare_request.message,
            )
            accept_token = self.transport.issue_accept_token(member)
            sent = send_once_with_claim(
                db,
                key(CHANNEL_EMAIL),
                lambda: self.transport.send_request_email(
                    member.email, member.name, requester.name, details, accept_token, spare_request.id
                ),
                clock=self.clock,
                claim_timeout=self.claim_timeout,
            )
            if not sent:
                logger.info("Email to member %s for request %s already delivered; skipped", member.id, spare_request.id)

        if member.phone and member.opted_in_sms:
            sent = send_once_with_claim(
                db,
                key(CHANNEL_SMS),
                lambda: self.transport.send_request_sms(
                    member.phone, requester.name, spare_request.game_date, spare_request.game_time
                ),
                clock=self.clock,
                claim_timeout=self.claim_timeout,
            )
            if not sent:
                logger.info("SMS to member %s for request %s already delivered; skipped", member.id, spare_request.id)

    def _release_claim(self, db: Session, item_id: int) -> None:
        db.execute(
            update(NotificationQueueItem)
            .where(NotificationQueueItem.id == item_id, NotificationQueueItem.notified_at.is_(None))
            .values(claimed_at=None)
            .execution_options(synchronize_session=False)
        )
        db.commit()

    def _finish(self, db: Session, request_id: int, notification_status: str) -> None:
        db.execute(
            update(SpareRequest)
            .where(SpareRequest.id == request_id)
            .values(notification_status=notification_status, next_notification_at=None)
            .execution_options(synchronize_session=False)
        )
        db.commit()
