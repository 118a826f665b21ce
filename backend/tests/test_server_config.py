"""Tests for spares/services/server_config_service.py."""
from __future__ import annotations

import pytest

from spares.services.clock import as_utc
from spares.services.server_config_service import (
    get_notification_delay_seconds,
    get_server_config,
    update_server_config,
)

from conftest import T0


def test_delay_defaults_without_row(db):
    assert get_notification_delay_seconds(db) == 180
    assert get_notification_delay_seconds(db, default=5) == 5


def test_update_creates_row(db):
    config = update_server_config(db, notification_delay_seconds=60)
    assert config["notification_delay_seconds"] == 60
    assert get_notification_delay_seconds(db) == 60


def test_override_set_and_cleared(db):
    update_server_config(db, test_current_time=T0)
    assert get_server_config(db)["test_current_time"].startswith("2026-01-10T12:00:00")

    # Delay-only update leaves the override alone
    update_server_config(db, notification_delay_seconds=90)
    assert get_server_config(db)["test_current_time"] is not None

    update_server_config(db, test_current_time=None)
    assert get_server_config(db)["test_current_time"] is None


def test_delay_must_be_positive(db):
    with pytest.raises(ValueError, match="at least 1"):
        update_server_config(db, notification_delay_seconds=0)


def test_override_round_trips_as_utc(db, clock):
    update_server_config(db, test_current_time=T0)
    clock.invalidate()
    assert as_utc(clock.now_authoritative()) == T0
