import logging
from datetime import datetime, timedelta
from typing import List, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..pin_store import PinStore, utcnow

logger = logging.getLogger(__name__)


def sweep(store: PinStore, max_age: timedelta, now: Optional[datetime] = None) -> List[str]:
    """Evict every entry older than `max_age`. Returns the evicted keys."""
    now = now or utcnow()
    cutoff = now - max_age
    stale = [key for key, entry in store.snapshot() if entry.age(now) > max_age]
    if not stale:
        return []
    evicted = store.remove_many(stale, stale_before=cutoff)
    for key in evicted:
        logger.info("Cleaning up stale key %s", key)
    return evicted


class StaleSweeper:
    """Runs `sweep` on a fixed interval in a background thread."""

    JOB_ID = "sweep-stale-pins"

    def __init__(self, store: PinStore, max_age: timedelta, interval_seconds: float = 10.0):
        self.store = store
        self.max_age = max_age
        self.interval_seconds = interval_seconds
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self) -> None:
        try:
            sweep(self.store, self.max_age)
        except Exception:
            # next cycle picks up whatever this one missed
            logger.exception("Sweep cycle failed")

    def start(self) -> None:
        if self.running:
            return
        scheduler = BackgroundScheduler(timezone="UTC")
        scheduler.add_job(
            self.run_once,
            "interval",
            seconds=self.interval_seconds,
            id=self.JOB_ID,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info(
            "Sweeper started (every %ss, max age %s)", self.interval_seconds, self.max_age
        )

    def stop(self) -> None:
        if not self.running:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("Sweeper stopped")
