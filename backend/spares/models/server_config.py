"""Single-row (id = 1) runtime configuration editable by admins."""
from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.sql import func

from spares.db.base import Base


class ServerConfig(Base):
    __tablename__ = "server_config"

    id = Column(Integer, primary_key=True)
    notification_delay_seconds = Column(Integer, nullable=False, default=180, server_default="180")
    test_current_time = Column(DateTime(timezone=True), nullable=True)  # overrides "now" for testing/debugging
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
