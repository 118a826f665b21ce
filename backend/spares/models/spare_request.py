"""A request to fill an empty seat in an upcoming game.

status: open | filled | cancelled.
notification_status: NULL (never started) | in_progress | completed | stopped.
Only meaningful while status = open; leaving open drives it to stopped.
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, false
from sqlalchemy.sql import func

from spares.db.base import Base


class SpareRequest(Base):
    __tablename__ = "spare_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    requester_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    league_id = Column(Integer, ForeignKey("leagues.id", ondelete="SET NULL"), nullable=True, index=True)
    requested_for_name = Column(String(255), nullable=False)
    game_date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    game_time = Column(String(8), nullable=False)  # HH:MM
    position = Column(String(16), nullable=True)  # lead | second | vice | skip
    message = Column(Text, nullable=True)
    request_type = Column(String(16), nullable=False, default="public", server_default="public")  # public | private

    status = Column(String(16), nullable=False, default="open", server_default="open", index=True)
    filled_by_member_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)
    filled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_member_id = Column(Integer, ForeignKey("members.id", ondelete="SET NULL"), nullable=True)

    # Staggered notifications
    notification_status = Column(String(16), nullable=True)
    notification_paused = Column(Boolean, nullable=False, default=False, server_default=false())
    next_notification_at = Column(DateTime(timezone=True), nullable=True)
    notification_generation = Column(Integer, nullable=False, default=0, server_default="0")
    notifications_sent_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
