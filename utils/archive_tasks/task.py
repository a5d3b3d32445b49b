"""
Archive Task entity

One task accumulates file URLs, moves through its processing states and holds
the outcome. All fields are guarded by the task's own lock.
"""

import uuid
import threading
from typing import Optional, List, Iterable

from .models import TaskStatus, TaskSnapshot, TRANSITIONS, ERROR_SEPARATOR
from .exceptions import InvalidTransitionError


class ArchiveTask:
    """Represents a single archive job"""

    def __init__(self, task_id: Optional[str] = None):
        self.task_id = task_id or str(uuid.uuid4())
        self._status = TaskStatus.CREATED
        self._file_urls: List[str] = []
        self._result_url: Optional[str] = None
        self._errors: List[str] = []

        # Lock for thread-safe updates
        self._lock = threading.Lock()

    @property
    def status(self) -> TaskStatus:
        with self._lock:
            return self._status

    def file_count(self) -> int:
        with self._lock:
            return len(self._file_urls)

    def add_file(self, url: str) -> int:
        """
        Append a file URL.

        URLs are recorded as given; filtering happens during processing.
        Appends after processing was claimed are still recorded but never
        processed.

        Returns:
            The number of URLs recorded so far
        """
        with self._lock:
            self._file_urls.append(url)
            return len(self._file_urls)

    def claim_for_processing(self) -> Optional[List[str]]:
        """
        Move the task from created to processing.

        Returns:
            Snapshot of the URLs to process, or None if the task was already
            claimed by another caller
        """
        with self._lock:
            if self._status is not TaskStatus.CREATED:
                return None
            self._transition(TaskStatus.PROCESSING)
            return list(self._file_urls)

    def mark_error(self, detail: str):
        """Fatal failure: the task ends without a usable archive"""
        with self._lock:
            self._transition(TaskStatus.ERROR)
            self._errors = [detail]

    def mark_done(self, result_url: str, errors: Iterable[str] = ()):
        """Finish the task, keeping any per-file errors as details"""
        errors = list(errors)
        with self._lock:
            self._transition(TaskStatus.DONE)
            self._errors = errors
            self._result_url = result_url

    def snapshot(self) -> TaskSnapshot:
        """Get a consistent copy of the observable fields"""
        with self._lock:
            return TaskSnapshot(
                task_id=self.task_id,
                status=self._status,
                file_urls=tuple(self._file_urls),
                result_url=self._result_url,
                error_details=ERROR_SEPARATOR.join(self._errors) or None,
                errors=tuple(self._errors)
            )

    def _transition(self, new_status: TaskStatus):
        # caller holds self._lock
        if new_status not in TRANSITIONS[self._status]:
            raise InvalidTransitionError(
                self.task_id, self._status.value, new_status.value
            )
        self._status = new_status

    def __repr__(self):
        return f"<ArchiveTask {self.task_id} {self._status.value}>"
