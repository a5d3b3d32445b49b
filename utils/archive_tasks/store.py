"""
Task Store - registry and orchestration entry points

Maps task ids to tasks and ties the admission gate and the processor
together. The store lock only guards the dictionary; it is released before
any task lock is taken and is never held across a download.
"""

import logging
import threading
from typing import Dict, Optional

from .admission import AdmissionController
from .exceptions import TaskNotFoundError
from .models import AppendResult, TaskSnapshot, TaskStatus
from .processor import TaskProcessor
from .task import ArchiveTask

logger = logging.getLogger(__name__)


class TaskStore:
    """
    In-memory task registry

    Tasks live for the lifetime of the process; ids are never reused or
    removed. Archive files on disk are cleaned up separately.

    Args:
        admission: Gate bounding concurrent processing passes
        processor: Object with ``process(task, urls)``
        max_files_per_task: File count that triggers processing
    """

    def __init__(
        self,
        admission: AdmissionController,
        processor: TaskProcessor,
        max_files_per_task: int
    ):
        if max_files_per_task < 1:
            raise ValueError(f"max_files_per_task must be at least 1, got {max_files_per_task}")
        self.admission = admission
        self.processor = processor
        self.max_files_per_task = max_files_per_task

        self._tasks: Dict[str, ArchiveTask] = {}
        self._lock = threading.Lock()
        self._workers: Dict[str, threading.Thread] = {}

    def create_task(self) -> TaskSnapshot:
        """Create and register a new task"""
        task = ArchiveTask()
        with self._lock:
            self._tasks[task.task_id] = task
        logger.info(f"Created new task with ID: {task.task_id}")
        return task.snapshot()

    def get_task(self, task_id: str) -> TaskSnapshot:
        """
        Get a snapshot of a task

        Raises:
            TaskNotFoundError: If the id is unknown
        """
        return self._lookup(task_id).snapshot()

    def add_file(self, task_id: str, url: str) -> AppendResult:
        """
        Append a file URL and start processing once the task is full

        When the file count reaches max_files_per_task, a slot is requested
        from the admission gate. A denied slot leaves the file recorded and the
        task in created state; the next append retries admission.

        Raises:
            TaskNotFoundError: If the id is unknown
        """
        task = self._lookup(task_id)
        file_count = task.add_file(url)
        logger.info(f"Added file {url} to task {task_id} ({file_count}/{self.max_files_per_task})")

        result = AppendResult(task_id=task_id, file_count=file_count)
        if file_count < self.max_files_per_task or task.status.is_terminal:
            return result

        if self._start_processing(task, result):
            logger.info(f"Task {task_id} reached max files, processing started")
        return result

    def is_busy(self) -> bool:
        """Check if every processing slot is taken"""
        return self.admission.is_saturated()

    def task_count(self) -> int:
        with self._lock:
            return len(self._tasks)

    def wait_for(self, task_id: str, timeout: Optional[float] = None) -> TaskSnapshot:
        """
        Block until the processing pass of a task has finished

        Returns immediately if no pass was started.
        """
        with self._lock:
            worker = self._workers.get(task_id)
        if worker is not None:
            worker.join(timeout)
        return self.get_task(task_id)

    def _lookup(self, task_id: str) -> ArchiveTask:
        with self._lock:
            task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _start_processing(self, task: ArchiveTask, result: AppendResult) -> bool:
        if task.status is not TaskStatus.CREATED:
            # Already claimed by an earlier append
            return False

        if not self.admission.try_reserve():
            logger.warning(
                f"Server is busy, task {task.task_id} not started "
                f"({self.admission.in_use}/{self.admission.capacity} slots in use)"
            )
            result.busy = True
            return False

        urls = task.claim_for_processing()
        if urls is None:
            self.admission.release()
            return False

        worker = threading.Thread(
            target=self._run,
            args=(task, urls),
            name=f"archive-{task.task_id[:8]}",
            daemon=True
        )
        with self._lock:
            self._workers[task.task_id] = worker
        worker.start()
        result.processing_started = True
        return True

    def _run(self, task: ArchiveTask, urls):
        try:
            self.processor.process(task, urls)
        except Exception as e:
            logger.exception(f"Unexpected error while processing task {task.task_id}")
            # Only this worker moves a claimed task out of processing
            if task.status is TaskStatus.PROCESSING:
                task.mark_error(f"unexpected error while processing task: {e}")
        finally:
            self.admission.release()
