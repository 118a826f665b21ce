"""Admin server config: notification delay and the test-time override used by the Clock."""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from spares.api.deps import get_clock
from spares.db.session import get_db
from spares.services.clock import Clock
from spares.services.server_config_service import get_server_config, update_server_config

router = APIRouter()
logger = logging.getLogger(__name__)


class UpdateConfigBody(BaseModel):
    notification_delay_seconds: int | None = Field(None, ge=1)
    test_current_time: datetime | None = Field(None, description="Override 'now'; send null to clear")


@router.get("/config")
def read_config(db: Session = Depends(get_db)) -> dict[str, Any]:
    return get_server_config(db)


@router.patch("/config")
def patch_config(
    body: UpdateConfigBody,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> dict[str, Any]:
    """Only fields present in the body change; test_current_time: null clears the override."""
    kwargs: dict[str, Any] = {"notification_delay_seconds": body.notification_delay_seconds}
    if "test_current_time" in body.model_fields_set:
        kwargs["test_current_time"] = body.test_current_time
    config = update_server_config(db, **kwargs)
    clock.invalidate()
    return config
