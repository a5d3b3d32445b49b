"""
Archive Tasks - task concurrency and processing engine

Collects file URLs per task, downloads the allowed ones and bundles them into
one zip archive per task.

Key Features:
- Per-task state machine (created -> processing -> done/error)
- Bounded, non-blocking admission of concurrent archive builds
- Sequential download per task, streamed straight into the archive
- Per-file failures aggregated on the task instead of aborting it
"""

from .admission import AdmissionController
from .exceptions import ArchiveTaskError, TaskNotFoundError, InvalidTransitionError
from .extension_filter import is_allowed_extension, url_extension
from .models import (
    TaskStatus,
    TaskSnapshot,
    AppendResult,
    FileOutcome,
    ProcessingReport
)
from .processor import TaskProcessor, archive_filename, entry_name_for
from .store import TaskStore
from .task import ArchiveTask

__all__ = [
    'AdmissionController',
    'ArchiveTask',
    'ArchiveTaskError',
    'TaskNotFoundError',
    'InvalidTransitionError',
    'is_allowed_extension',
    'url_extension',
    'TaskStatus',
    'TaskSnapshot',
    'AppendResult',
    'FileOutcome',
    'ProcessingReport',
    'TaskProcessor',
    'archive_filename',
    'entry_name_for',
    'TaskStore',
]
