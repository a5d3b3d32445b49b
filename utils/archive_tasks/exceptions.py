"""
Exceptions raised by the archive task engine
"""


class ArchiveTaskError(Exception):
    """Base class for archive task errors"""


class TaskNotFoundError(ArchiveTaskError):
    """Raised when a task id is not registered in the store"""

    def __init__(self, task_id: str):
        super().__init__(f"task not found: {task_id}")
        self.task_id = task_id


class InvalidTransitionError(ArchiveTaskError):
    """Raised when a task is asked to move backwards or out of a terminal state"""

    def __init__(self, task_id: str, current: str, requested: str):
        super().__init__(
            f"task {task_id} cannot move from {current} to {requested}"
        )
        self.task_id = task_id
        self.current = current
        self.requested = requested
