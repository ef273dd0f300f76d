"""Scheduled cleanup of staged upload directories."""

import logging
import shutil
import time
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler

logger = logging.getLogger(__name__)

_scheduler: BackgroundScheduler | None = None


def remove_job_dir(temp_dir: str, job_id: str) -> None:
    """Delete a job's staged uploads once its run has finished."""
    job_dir = Path(temp_dir) / job_id
    if not job_dir.exists():
        return
    try:
        shutil.rmtree(job_dir)
        logger.info("cleanup.job_dir_deleted job_id=%s", job_id)
    except OSError as e:
        logger.warning("cleanup.job_dir_delete_failed job_id=%s error=%s", job_id, e)


def cleanup_old_jobs(temp_dir: str, max_age_hours: int = 24) -> None:
    """Delete staged job directories older than max_age_hours based on mtime."""
    base = Path(temp_dir)
    if not base.exists():
        return
    cutoff = time.time() - (max_age_hours * 3600)
    for item in base.iterdir():
        if item.is_dir():
            mtime = item.stat().st_mtime
            if mtime < cutoff:
                try:
                    shutil.rmtree(item)
                    logger.info("Cleaned up old job directory: %s", item.name)
                except OSError as e:
                    logger.warning("Failed to cleanup %s: %s", item, e)


def setup_scheduler(temp_dir: str, max_age_hours: int = 24) -> BackgroundScheduler:
    """Create and start APScheduler with an hourly stale-upload sweep."""
    global _scheduler
    _scheduler = BackgroundScheduler()
    _scheduler.add_job(
        cleanup_old_jobs,
        "interval",
        hours=1,
        args=[temp_dir, max_age_hours],
        id="cleanup_old_jobs",
    )
    _scheduler.start()
    logger.info("Scheduler started: cleanup every hour, max age %s hours", max_age_hours)
    return _scheduler


def shutdown_scheduler() -> None:
    """Shut down the scheduler cleanly."""
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Scheduler stopped")
