"""Periodic deletion of sessions past their expiry."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from not_at_home.domain.errors import PersistenceError
from not_at_home.services.sessions import SessionService

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "expired_session_sweep"


@dataclass
class ExpirationSweeper:
    """Deletes expired sessions on a fixed interval.

    Sweeps are idempotent: a session removed by an earlier tick, by another
    worker or by an explicit teardown simply no longer shows up.
    """

    session_service: SessionService
    scheduler_factory: Callable[[], BackgroundScheduler] = BackgroundScheduler
    _scheduler: BackgroundScheduler | None = field(default=None, init=False)

    def sweep(self) -> int:
        """Delete every expired session and return how many were removed."""
        expired = self.session_service.list_expired_sessions()
        if not expired:
            return 0
        deleted = 0
        for session in expired:
            try:
                self.session_service.delete_session(session.id)
            except PersistenceError:
                logger.exception(
                    "Failed to delete expired session",
                    extra={"session_id": str(session.id)},
                )
                continue
            deleted += 1
        logger.info(
            "Expired sessions swept",
            extra={"found": len(expired), "deleted": deleted},
        )
        return deleted

    def start(self, interval_minutes: int = 15) -> Callable[[], None]:
        """Run a sweep now and then every ``interval_minutes``; return a stop."""
        if self._scheduler is not None:
            raise RuntimeError("Expiration sweeper is already running")
        scheduler = self.scheduler_factory()
        scheduler.add_job(
            self._run_scheduled,
            trigger=IntervalTrigger(minutes=interval_minutes),
            id=SWEEP_JOB_ID,
            name="Delete expired sessions",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(tz=UTC),
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Expiration sweeper started",
            extra={"interval_minutes": interval_minutes},
        )
        return self.stop

    @property
    def running(self) -> bool:
        """Whether a schedule is active."""
        return self._scheduler is not None

    def stop(self) -> None:
        """Stop the schedule; no sweep starts after this returns."""
        scheduler, self._scheduler = self._scheduler, None
        if scheduler is None:
            return
        if scheduler.running:
            scheduler.shutdown(wait=False)
        logger.info("Expiration sweeper stopped")

    def _run_scheduled(self) -> None:
        try:
            self.sweep()
        except Exception:
            logger.exception("Scheduled expiration sweep failed")
