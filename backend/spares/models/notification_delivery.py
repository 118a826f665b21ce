"""Idempotency ledger: one row per (request, member, generation, channel, kind).

sent_at is write-once per key. A new notification_generation opens a disjoint key space
so a re-opened request can notify the same member again.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from spares.db.base import Base


class NotificationDelivery(Base):
    __tablename__ = "spare_request_notification_deliveries"
    __table_args__ = (
        UniqueConstraint(
            "spare_request_id",
            "member_id",
            "notification_generation",
            "channel",
            "kind",
            name="uq_notification_deliveries_key",
        ),
        Index("ix_notification_deliveries_claimed", "spare_request_id", "claimed_at"),
        Index("ix_notification_deliveries_sent", "spare_request_id", "sent_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    spare_request_id = Column(Integer, ForeignKey("spare_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    notification_generation = Column(Integer, nullable=False)
    channel = Column(String(16), nullable=False)  # email | sms
    kind = Column(String(64), nullable=False)  # e.g. spare_request
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
