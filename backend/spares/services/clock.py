"""
Current time for the notification pipeline, with an optional override.

server_config.test_current_time (when set) replaces "now" everywhere the pipeline
schedules or claims work, so staggered delays and claim expiry can be exercised by
moving the override instead of sleeping.

The override is cached for CLOCK_CACHE_TTL_SECONDS. now() never touches the DB: it
answers from the cache (even a stale one) or the wall clock. now_authoritative()
refreshes a stale cache; concurrent callers during a refresh wait on the same read.
Call invalidate() after changing server_config.
"""
import asyncio
import logging
import threading
import time
from concurrent.futures import Future
from datetime import datetime, timezone
from typing import Callable

from sqlalchemy.orm import Session

from spares.core.constants import CLOCK_CACHE_TTL_SECONDS, SERVER_CONFIG_ID
from spares.models.server_config import ServerConfig

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive values (SQLite, timestamp without time zone) are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        ttl_seconds: float = CLOCK_CACHE_TTL_SECONDS,
        wall_clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._session_factory = session_factory
        self._ttl = ttl_seconds
        self._wall_clock = wall_clock
        self._monotonic = monotonic
        self._lock = threading.Lock()
        self._populated = False
        self._override: datetime | None = None
        self._cached_at = 0.0
        self._refresh: Future | None = None

    def _resolve(self, override: datetime | None) -> datetime:
        if override is not None:
            return override
        return as_utc(self._wall_clock())

    def _is_fresh(self) -> bool:
        return self._populated and (self._monotonic() - self._cached_at) < self._ttl

    def _read_override(self) -> datetime | None:
        db = self._session_factory()
        try:
            value = (
                db.query(ServerConfig.test_current_time)
                .filter(ServerConfig.id == SERVER_CONFIG_ID)
                .scalar()
            )
        finally:
            db.close()
        return as_utc(value) if value is not None else None

    def now(self) -> datetime:
        """Best-effort current time: cached override if one was ever loaded, else wall clock."""
        with self._lock:
            populated = self._populated
            override = self._override
        if not populated:
            return self._resolve(None)
        return self._resolve(override)

    def now_authoritative(self) -> datetime:
        """Current time honouring the server_config override; refreshes a stale cache."""
        with self._lock:
            if self._is_fresh():
                return self._resolve(self._override)
            pending = self._refresh
            leader = pending is None
            if leader:
                pending = self._refresh = Future()

        if leader:
            try:
                override = self._read_override()
            except Exception as e:
                with self._lock:
                    self._refresh = None
                pending.set_exception(e)
                raise
            with self._lock:
                self._override = override
                self._populated = True
                self._cached_at = self._monotonic()
                self._refresh = None
            pending.set_result(override)
            if override is not None:
                logger.debug("Clock override active: %s", override.isoformat())

        return self._resolve(pending.result())

    async def now_async(self) -> datetime:
        """now_authoritative() for async callers; the DB read runs in a worker thread."""
        with self._lock:
            if self._is_fresh():
                return self._resolve(self._override)
        return await asyncio.to_thread(self.now_authoritative)

    def invalidate(self) -> None:
        """Drop the cached override so the next now_authoritative() re-reads server_config."""
        with self._lock:
            self._populated = False
            self._override = None
            self._cached_at = 0.0
