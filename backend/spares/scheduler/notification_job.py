"""Runs every NOTIFICATION_TICK_SECONDS: send the next staggered spare-request notification.

One job per process; any number of processes may run it against the same database.
stop(wait=True) lets an in-flight tick (and so its claim -> send -> mark sequence) finish
before the scheduler exits.
"""
import logging

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED
from apscheduler.schedulers.background import BackgroundScheduler

from spares.core.constants import NOTIFICATION_JOB_ID
from spares.services.notification_processor import NotificationProcessor

logger = logging.getLogger(__name__)


class NotificationWorker:
    def __init__(
        self,
        processor: NotificationProcessor,
        *,
        interval_seconds: int = 5,
        scheduler: BackgroundScheduler | None = None,
    ):
        self.processor = processor
        self.interval_seconds = interval_seconds
        self._scheduler = scheduler or BackgroundScheduler()
        self._started = False

    @property
    def running(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        self._scheduler.add_job(
            self.processor.run_tick,
            "interval",
            seconds=self.interval_seconds,
            id=NOTIFICATION_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.add_listener(self._on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MISSED)
        self._scheduler.start()
        self._started = True
        logger.info("Notification processor started (checking every %s seconds)", self.interval_seconds)

    def stop(self, wait: bool = True) -> None:
        """Stop scheduling ticks; with wait=True block until the running tick returns."""
        if not self._started:
            return
        self._started = False
        self._scheduler.shutdown(wait=wait)
        logger.info("Notification processor stopped")

    def _on_job_event(self, event) -> None:
        # Top-level handler: a failed tick is logged; the interval keeps running.
        if event.code == EVENT_JOB_MISSED:
            logger.debug("Notification tick missed its run time (previous tick still running)")
            return
        if event.exception is not None:
            logger.error(
                "Error in notification processor: %s",
                event.exception,
                exc_info=(type(event.exception), event.exception, event.exception.__traceback__),
            )
