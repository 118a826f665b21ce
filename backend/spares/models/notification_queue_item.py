"""One candidate member in a spare request's staggered notification queue.

notified_at is write-once. claimed_at is an advisory, self-expiring lock held by the
processor instance currently sending to this member; it is cleared once notified_at is set.
"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, UniqueConstraint
from sqlalchemy.sql import func

from spares.db.base import Base


class NotificationQueueItem(Base):
    __tablename__ = "spare_request_notification_queue"
    __table_args__ = (
        UniqueConstraint("spare_request_id", "member_id", name="uq_notification_queue_request_member"),
        Index("ix_notification_queue_order", "spare_request_id", "queue_order"),
        Index("ix_notification_queue_notified", "spare_request_id", "notified_at"),
        Index("ix_notification_queue_claimed", "spare_request_id", "claimed_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    spare_request_id = Column(Integer, ForeignKey("spare_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    queue_order = Column(Integer, nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    notified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
