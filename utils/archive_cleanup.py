"""Archive Cleanup - periodically delete old archive files"""

import logging
import time
from pathlib import Path
from typing import List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .file_manager import FileManager

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = 'archive_cleanup'


class ArchiveCleaner:
    """
    Deletes archives whose last modification is older than max_age_seconds.

    Age is the only criterion: an archive that was never downloaded is
    removed all the same once it is old enough.
    """

    def __init__(self, file_manager: FileManager, max_age_seconds: int = 600,
                 interval_seconds: int = 60):
        self.file_manager = file_manager
        self.max_age_seconds = max_age_seconds
        self.interval_seconds = interval_seconds
        self.scheduler: Optional[BackgroundScheduler] = None

    def start(self):
        """Start the periodic sweep in a background thread"""
        if self.scheduler is not None:
            return

        self.scheduler = BackgroundScheduler(daemon=True)
        self.scheduler.add_job(
            func=self.sweep,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=CLEANUP_JOB_ID,
            name=f"Delete archives older than {self.max_age_seconds}s",
            replace_existing=True,
            max_instances=1,
            coalesce=True
        )
        self.scheduler.start()
        logger.info(
            f"Archive cleanup scheduled every {self.interval_seconds}s "
            f"(max age {self.max_age_seconds}s) in {self.file_manager.archive_dir}"
        )

    def shutdown(self):
        """Stop the scheduler without waiting for a running sweep"""
        if self.scheduler is None:
            return
        self.scheduler.shutdown(wait=False)
        self.scheduler = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def sweep(self, now: Optional[float] = None) -> List[Path]:
        """
        Delete expired archives once

        Args:
            now: Reference timestamp (defaults to time.time())

        Returns:
            Paths that were deleted
        """
        now = time.time() if now is None else now
        deleted = []

        for path in self.file_manager.list_archives():
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue

            if now - stat.st_mtime <= self.max_age_seconds:
                continue

            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error(f"Failed to delete old archive {path}: {e}")
                continue

            logger.info(f"Deleted old archive: {path} ({FileManager.format_size(stat.st_size)})")
            deleted.append(path)

        return deleted
