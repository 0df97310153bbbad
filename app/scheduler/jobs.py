"""
app/scheduler/jobs.py

APScheduler-based maintenance scheduler.

Schedule (all times UTC)
--------------------------
  history_retention: daily at HISTORY_CLEANUP_HOUR_UTC (default 03:00),
                      deletes audit entries older than HISTORY_RETENTION_DAYS.

Lifecycle
----------
Call ``build_scheduler()`` once to get a configured ``BackgroundScheduler``.
Start it on app boot; shut it down gracefully on app shutdown.
The scheduler is wired into FastAPI via the ``lifespan`` context in main.py.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.background import BackgroundScheduler

from app.config import HistorySettings, get_history_settings
from app.repositories.history_repository import HistoryStore

logger = logging.getLogger(__name__)


def run_history_retention(
    history_store: HistoryStore,
    retention_days: int,
    *,
    now: datetime | None = None,
) -> int:
    """
    Purge audit entries older than the retention window.

    Returns the number of deleted entries; failures are logged, not raised,
    so one bad run never unschedules the job.
    """
    now = now or datetime.now(tz=timezone.utc)
    cutoff = now - timedelta(days=retention_days)
    logger.info("Scheduler: history_retention starting cutoff=%s", cutoff.isoformat())
    try:
        purged = history_store.purge_older_than(cutoff)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Scheduler: history_retention failed: %s", exc)
        return 0
    logger.info("Scheduler: history_retention complete purged=%s", purged)
    return purged


def build_scheduler(
    history_store: HistoryStore,
    settings: HistorySettings | None = None,
) -> BackgroundScheduler:
    """
    Build and register all periodic jobs.

    Returns a configured but *not yet started* ``BackgroundScheduler``.
    The caller must call ``.start()`` and ``.shutdown(wait=True)`` at the
    appropriate lifecycle points.
    """
    settings = settings or get_history_settings()
    scheduler = BackgroundScheduler(timezone="UTC")

    if settings.cleanup_enabled:
        scheduler.add_job(
            run_history_retention,
            trigger="cron",
            hour=settings.cleanup_hour_utc,
            minute=0,
            args=[history_store, settings.retention_days],
            id="history_retention",
            name="Daily history retention purge",
            replace_existing=True,
            misfire_grace_time=3600,
        )
    else:
        logger.info("Scheduler: history_retention disabled")

    return scheduler
