"""
Data models for the archive task engine

Plain data classes shared by the task entity, the store and the HTTP layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, Tuple


ERROR_SEPARATOR = "; "


class TaskStatus(Enum):
    """Archive task status"""
    CREATED = "created"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.DONE, TaskStatus.ERROR)


# Allowed forward moves; terminal states have none
TRANSITIONS = {
    TaskStatus.CREATED: (TaskStatus.PROCESSING,),
    TaskStatus.PROCESSING: (TaskStatus.DONE, TaskStatus.ERROR),
    TaskStatus.DONE: (),
    TaskStatus.ERROR: (),
}


@dataclass(frozen=True)
class TaskSnapshot:
    """Read-only copy of a task's observable fields"""
    task_id: str
    status: TaskStatus
    file_urls: Tuple[str, ...] = ()
    result_url: Optional[str] = None
    error_details: Optional[str] = None
    # Individual messages; error_details is their "; "-joined form
    errors: Tuple[str, ...] = ()

    @property
    def file_count(self) -> int:
        return len(self.file_urls)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data = {
            'id': self.task_id,
            'status': self.status.value,
            'file_urls': list(self.file_urls),
        }
        # Optional fields are omitted until they carry a value
        if self.result_url:
            data['result_url'] = self.result_url
        if self.error_details:
            data['error_details'] = self.error_details
        return data


@dataclass
class AppendResult:
    """Outcome of appending a file URL to a task"""
    task_id: str
    file_count: int
    processing_started: bool = False
    busy: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'task_id': self.task_id,
            'file_count': self.file_count,
            'processing_started': self.processing_started,
            'busy': self.busy,
        }


@dataclass
class FileOutcome:
    """Result of adding one URL to an archive"""
    url: str
    entry_name: Optional[str] = None
    bytes_written: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class ProcessingReport:
    """Summary of one processing pass, returned by the processor"""
    task_id: str
    archive_path: Optional[str] = None
    outcomes: list = field(default_factory=list)
    fatal_error: Optional[str] = None

    @property
    def errors(self) -> list:
        return [o.error for o in self.outcomes if o.error]

    @property
    def entries_written(self) -> int:
        return sum(1 for o in self.outcomes if o.success)
