"""
Idempotency guard for outbound notifications.

Claims a (request, member, generation, channel, kind) key, runs the sender, then marks
the key sent. When several processors try the same key at once only one wins the claim.
A claim left behind by a crashed process expires after claim_timeout and may be retried.

If the ledger table cannot be written (partially migrated DB, store errors) we fail open
and send anyway: a possible duplicate is preferred over a missing notification.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable

from sqlalchemy import and_, or_, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from spares.core.constants import DEFAULT_CLAIM_TIMEOUT_SECONDS
from spares.models.notification_delivery import NotificationDelivery
from spares.services.clock import Clock

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_TIMEOUT = timedelta(seconds=DEFAULT_CLAIM_TIMEOUT_SECONDS)


@dataclass(frozen=True)
class DeliveryKey:
    spare_request_id: int
    member_id: int
    notification_generation: int
    channel: str
    kind: str

    def values(self) -> dict:
        return {
            "spare_request_id": self.spare_request_id,
            "member_id": self.member_id,
            "notification_generation": self.notification_generation,
            "channel": self.channel,
            "kind": self.kind,
        }


def _key_filter(key: DeliveryKey):
    return and_(
        NotificationDelivery.spare_request_id == key.spare_request_id,
        NotificationDelivery.member_id == key.member_id,
        NotificationDelivery.notification_generation == key.notification_generation,
        NotificationDelivery.channel == key.channel,
        NotificationDelivery.kind == key.kind,
    )


def _ensure_row(db: Session, key: DeliveryKey) -> None:
    """INSERT ... ON CONFLICT DO NOTHING for the key's unique constraint."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(NotificationDelivery).values(**key.values()).on_conflict_do_nothing()
    elif dialect == "sqlite":
        stmt = sqlite_insert(NotificationDelivery).values(**key.values()).on_conflict_do_nothing()
    else:
        if db.query(NotificationDelivery.id).filter(_key_filter(key)).first() is not None:
            return
        stmt = NotificationDelivery.__table__.insert().values(**key.values())
    db.execute(stmt)
    db.commit()


def send_once_with_claim(
    db: Session,
    key: DeliveryKey,
    send: Callable[[], None],
    *,
    clock: Clock,
    claim_timeout: timedelta = DEFAULT_CLAIM_TIMEOUT,
) -> bool:
    """
    Run send() at most once per key (and at most once per claim window).
    Returns True when this call performed the send, False when it was skipped because the
    key is already sent or another holder owns a live claim. Errors from send() release
    the claim and propagate.
    """
    try:
        _ensure_row(db, key)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Delivery ledger unavailable for %s; sending without dedup: %s", key, e)
        send()
        return True

    now = clock.now_authoritative()
    claim_expired_before = now - claim_timeout
    claimed = db.execute(
        update(NotificationDelivery)
        .where(
            _key_filter(key),
            NotificationDelivery.sent_at.is_(None),
            or_(
                NotificationDelivery.claimed_at.is_(None),
                NotificationDelivery.claimed_at < claim_expired_before,
            ),
        )
        .values(claimed_at=now)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    if claimed.rowcount == 0:
        logger.debug("Delivery %s already sent or claimed elsewhere; skipping", key)
        return False

    try:
        send()
    except Exception:
        db.execute(
            update(NotificationDelivery)
            .where(_key_filter(key))
            .values(claimed_at=None)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        raise

    db.execute(
        update(NotificationDelivery)
        .where(_key_filter(key), NotificationDelivery.sent_at.is_(None))
        .values(sent_at=clock.now_authoritative(), claimed_at=None)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return True
