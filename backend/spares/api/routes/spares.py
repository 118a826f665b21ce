"""
Spare request notification API: progress, pause / unpause, restart (new generation),
and the fill / cancel transitions that stop notifications.

No authentication here; the caller's member id comes in the body.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from spares.api.deps import get_clock
from spares.core.errors import NotificationStateError, SpareRequestNotFound, service_error_to_http
from spares.db.session import get_db
from spares.services.clock import Clock
from spares.services.notification_queue import (
    get_spare_request,
    notification_progress,
    pause_notifications,
    restart_notifications,
    unpause_notifications,
)
from spares.services.spare_request_service import cancel_request, mark_request_filled

router = APIRouter()
logger = logging.getLogger(__name__)


class RestartNotificationsBody(BaseModel):
    member_ids: list[int] = Field(default_factory=list, max_length=1000, description="Candidates in priority order")


class MemberActionBody(BaseModel):
    member_id: int = Field(..., ge=1)


def _load(db: Session, request_id: int):
    try:
        return get_spare_request(db, request_id)
    except SpareRequestNotFound as e:
        raise service_error_to_http(e)


# --- Progress ---


@router.get("/spares/{request_id}/notification-status")
def get_notification_status(request_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    """Staggered notification progress: status, queued / notified counts, next send time."""
    return notification_progress(db, _load(db, request_id))


# --- Pause / unpause ---


@router.post("/spares/{request_id}/pause-notifications")
def pause(request_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    spare_request = _load(db, request_id)
    try:
        pause_notifications(db, spare_request)
    except NotificationStateError as e:
        raise service_error_to_http(e)
    return {"success": True}


@router.post("/spares/{request_id}/unpause-notifications")
def unpause(request_id: int, db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> dict[str, Any]:
    """Resume; the next candidate is notified on the next processor tick."""
    spare_request = _load(db, request_id)
    try:
        unpause_notifications(db, spare_request, clock=clock)
    except NotificationStateError as e:
        raise service_error_to_http(e)
    return {"success": True}


# --- Restart (new notification generation) ---


@router.post("/spares/{request_id}/restart-notifications")
def restart(
    request_id: int,
    body: RestartNotificationsBody,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    spare_request = _load(db, request_id)
    try:
        queued = restart_notifications(db, spare_request, body.member_ids, clock=clock)
    except NotificationStateError as e:
        raise service_error_to_http(e)
    return {
        "success": True,
        "notifications_queued": queued,
        "notification_status": spare_request.notification_status,
        "notification_generation": spare_request.notification_generation,
    }


# --- Fill / cancel ---


@router.post("/spares/{request_id}/fill")
def fill(
    request_id: int,
    body: MemberActionBody,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    spare_request = _load(db, request_id)
    try:
        mark_request_filled(db, spare_request, body.member_id, clock=clock)
    except NotificationStateError as e:
        raise service_error_to_http(e)
    return {"success": True, "status": spare_request.status}


@router.post("/spares/{request_id}/cancel")
def cancel(request_id: int, body: MemberActionBody, db: Session = Depends(get_db)) -> dict[str, Any]:
    spare_request = _load(db, request_id)
    try:
        cancel_request(db, spare_request, body.member_id)
    except NotificationStateError as e:
        raise service_error_to_http(e)
    return {"success": True, "status": spare_request.status}
