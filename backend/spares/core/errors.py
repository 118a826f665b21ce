"""
Centralized error handling for the notification pipeline and its API.

Domain exceptions raised by services, the typed "transient store error" check used
by the processor, and a reusable helper so routes stay thin.
"""
from __future__ import annotations

import psycopg2
from fastapi import HTTPException
from sqlalchemy.exc import DBAPIError, DisconnectionError, InterfaceError

# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------


class SpareRequestNotFound(LookupError):
    """No spare request with the given id."""

    def __init__(self, request_id: int):
        super().__init__(f"Spare request {request_id} not found")
        self.request_id = request_id


class NotificationStateError(ValueError):
    """Operation not allowed for the request's current status / notification_status."""


class DeliveryError(RuntimeError):
    """An email or SMS provider rejected or failed to accept a message."""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel} delivery failed: {message}")
        self.channel = channel


# ---------------------------------------------------------------------------
# Transient infrastructure errors
# ---------------------------------------------------------------------------

# Connection-exception SQLSTATE class plus the 57P0x server shutdown codes
_TRANSIENT_SQLSTATE_CLASSES = ("08",)
_TRANSIENT_SQLSTATES = frozenset({"57P01", "57P02", "57P03"})


def _is_driver_connection_error(orig: BaseException | None) -> bool:
    """True when the DBAPI exception wrapped by SQLAlchemy is a connection-level failure."""
    if orig is None:
        return False
    if isinstance(orig, (ConnectionError, TimeoutError)):
        return True
    sqlstate = getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate.startswith(_TRANSIENT_SQLSTATE_CLASSES) or sqlstate in _TRANSIENT_SQLSTATES
    # psycopg2 reports refused / dropped connections as a bare OperationalError with no SQLSTATE
    return type(orig) is psycopg2.OperationalError


def is_transient_db_error(exc: BaseException) -> bool:
    """
    True when exc (or the store error it wraps) means the database connection went away.

    Schema or SQL faults are not transient even when the driver calls them
    OperationalError (e.g. SQLite "no such table"). A DeliveryError is never a store
    outage, whatever socket error caused it.
    """
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, DeliveryError):
            return False
        if isinstance(current, DisconnectionError):
            return True
        if isinstance(current, DBAPIError):
            if current.connection_invalidated or isinstance(current, InterfaceError):
                return True
            return _is_driver_connection_error(current.orig)
        current = current.__cause__ or current.__context__
    return False


# ---------------------------------------------------------------------------
# HTTP mapping
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500


def service_error_to_http(exc: Exception) -> HTTPException:
    """Map a service exception to an HTTPException (404 / 400, otherwise 500)."""
    if isinstance(exc, SpareRequestNotFound):
        return HTTPException(status_code=STATUS_NOT_FOUND, detail="Spare request not found")
    if isinstance(exc, NotificationStateError):
        return HTTPException(status_code=STATUS_BAD_REQUEST, detail=str(exc))
    return HTTPException(status_code=STATUS_INTERNAL_ERROR, detail=str(exc))
