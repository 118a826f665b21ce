"""Club member as seen by the notification pipeline: who to contact and how."""
from sqlalchemy import Boolean, Column, DateTime, Integer, String, false, true
from sqlalchemy.sql import func

from spares.db.base import Base


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(32), nullable=True)
    opted_in_sms = Column(Boolean, nullable=False, default=False, server_default=false())
    email_subscribed = Column(Boolean, nullable=False, default=True, server_default=true())
    is_admin = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
