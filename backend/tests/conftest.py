import os

# Settings and the engine are built at import time; keep them off any real database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("NOTIFICATION_PROCESSOR_ENABLED", "false")
os.environ.setdefault("NOTIFY_TEST_MODE", "true")

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from spares.core.constants import SERVER_CONFIG_ID
from spares.db.base import Base
from spares.models import League, Member, ServerConfig, SpareRequest
from spares.services.clock import Clock

T0 = datetime(2026, 1, 10, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest.fixture()
def engine(tmp_path):
    # File-backed so several sessions (i.e. several "processes") see the same rows
    eng = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'spares.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture()
def clock(session_factory):
    # ttl 0: every authoritative read sees the latest override
    return Clock(session_factory, ttl_seconds=0)


@pytest.fixture()
def set_now(db, clock):
    """Move the clock override (server_config.test_current_time) and drop the clock cache."""

    def _set(value: datetime | None, delay_seconds: int | None = None):
        row = db.get(ServerConfig, SERVER_CONFIG_ID)
        if row is None:
            row = ServerConfig(id=SERVER_CONFIG_ID, notification_delay_seconds=180)
            db.add(row)
        row.test_current_time = value
        if delay_seconds is not None:
            row.notification_delay_seconds = delay_seconds
        db.commit()
        clock.invalidate()

    return _set


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def make_member(db):
    def _make(name: str, email: str | None = None, phone: str | None = None, opted_in_sms: bool = False) -> Member:
        member = Member(
            name=name,
            email=email if email is not None else f"{name.lower()}@example.com",
            phone=phone,
            opted_in_sms=opted_in_sms,
        )
        db.add(member)
        db.commit()
        return member

    return _make


@pytest.fixture()
def make_request(db):
    def _make(requester: Member, league: League | None = None, **fields) -> SpareRequest:
        spare_request = SpareRequest(
            requester_id=requester.id,
            league_id=league.id if league else None,
            requested_for_name=fields.pop("requested_for_name", requester.name),
            game_date=fields.pop("game_date", "2026-01-15"),
            game_time=fields.pop("game_time", "18:30"),
            **fields,
        )
        db.add(spare_request)
        db.commit()
        return spare_request

    return _make


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

class FakeTransport:
    """Records outbound messages; fail_on = {"email"} / {"sms"} makes that channel raise."""

    def __init__(self, fail_on=()):
        self.emails = []
        self.sms = []
        self.fail_on = set(fail_on)
        self.on_send = None

    def issue_accept_token(self, member) -> str:
        return f"token-{member.id}"

    def send_request_email(self, to_email, to_name, requester_name, details, accept_token, request_id):
        if "email" in self.fail_on:
            raise RuntimeError("smtp down")
        if self.on_send is not None:
            self.on_send()
        self.emails.append(
            {
                "to": to_email,
                "to_name": to_name,
                "requester": requester_name,
                "details": details,
                "token": accept_token,
                "request_id": request_id,
            }
        )

    def send_request_sms(self, to_phone, requester_name, game_date, game_time):
        if "sms" in self.fail_on:
            raise RuntimeError("twilio down")
        self.sms.append({"to": to_phone, "requester": requester_name, "date": game_date, "time": game_time})

    @property
    def email_recipients(self) -> list[str]:
        return [e["to"] for e in self.emails]


@pytest.fixture()
def transport():
    return FakeTransport()
