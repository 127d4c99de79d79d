"""
Background scheduler for periodic tasks.

This module manages background jobs that run on a schedule:
- Cleanup orphaned photos: Runs every PHOTO_CLEANUP_INTERVAL_HOURS

A photo is orphaned when no account references it. This happens when an
upload is never followed by an account create/update, or when a crash lands
between a row write and the matching file write.
"""

import logging
import time
from pathlib import Path
from typing import List
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.database import SessionLocal
from app.models.account import Account
from app.storage.local_storage import PhotoStorage, storage

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler()


def find_orphaned_photos(db: Session, photo_storage: PhotoStorage, grace_hours: int) -> List[Path]:
    """
    Photos on disk that no account references.

    Photos younger than grace_hours are skipped: clients upload a photo first
    and create or update the account with its name afterwards.
    """
    referenced = {name for (name,) in db.query(Account.photo_file_name).all()}
    cutoff = time.time() - grace_hours * 3600

    return [
        path for path in photo_storage.list_photos()
        if path.name not in referenced
        and not photo_storage.is_default_photo(path.name)
        and path.stat().st_mtime < cutoff
    ]


def cleanup_orphaned_photos_job(photo_storage: PhotoStorage = storage):
    """Background job deleting orphaned photos"""
    db = SessionLocal()
    try:
        orphaned = find_orphaned_photos(db, photo_storage, settings.PHOTO_CLEANUP_GRACE_HOURS)
        if not orphaned:
            logger.info("Cleanup job completed: No orphaned photos found")
            return

        total_deleted = 0
        for path in orphaned:
            try:
                if photo_storage.delete_photo(path.name):
                    total_deleted += 1
                    logger.info(f"Deleted orphaned photo: {path.name}")
            except OSError as e:
                logger.error(f"Error deleting orphaned photo {path.name}: {str(e)}")

        logger.info(f"Cleanup job completed: Deleted {total_deleted} orphaned photos")
    except Exception as e:
        # Job must not take the scheduler down; next run retries
        logger.error(f"Error in cleanup_orphaned_photos_job: {str(e)}")
    finally:
        db.close()


def start_scheduler():
    """
    Start the background scheduler.

    Called when the FastAPI app starts, unless PHOTO_CLEANUP_ENABLED is off.
    """
    if not settings.PHOTO_CLEANUP_ENABLED:
        logger.info("Orphaned photo cleanup disabled")
        return

    if not scheduler.running:
        scheduler.add_job(
            cleanup_orphaned_photos_job,
            trigger=IntervalTrigger(hours=settings.PHOTO_CLEANUP_INTERVAL_HOURS),
            id="cleanup_orphaned_photos",
            name="Cleanup orphaned photos",
            replace_existing=True
        )

        scheduler.start()
        logger.info(
            f"Background scheduler started. Cleanup job scheduled to run every {settings.PHOTO_CLEANUP_INTERVAL_HOURS} hours.")


def stop_scheduler():
    """
    Stop the background scheduler.

    Called when the FastAPI app shuts down.
    """
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Background scheduler stopped.")
