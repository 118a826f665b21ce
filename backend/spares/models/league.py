from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.sql import func

from spares.db.base import Base


class League(Base):
    __tablename__ = "leagues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    day_of_week = Column(Integer, nullable=True)  # 0 = Sunday
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
