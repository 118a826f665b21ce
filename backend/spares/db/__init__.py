from spares.db.base import Base
from spares.db.session import get_db, engine, SessionLocal
from spares.db.tables import ALL_TABLE_NAMES

__all__ = ["get_db", "engine", "SessionLocal", "Base", "ALL_TABLE_NAMES"]
