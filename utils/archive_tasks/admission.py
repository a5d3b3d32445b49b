"""
Admission Controller

Bounded counting gate limiting how many archive builds run at once.
"""

import logging
from threading import Lock

logger = logging.getLogger(__name__)


class AdmissionController:
    """
    Non-blocking counting gate.

    Reserving is a single check-and-increment under one lock, so concurrent
    callers can never hold more than ``capacity`` slots between them.
    There is no queue: a denied reservation is the caller's to report.

    Example:
        gate = AdmissionController(capacity=3)
        if gate.try_reserve():
            try:
                build_archive()
            finally:
                gate.release()
        else:
            # Server busy
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._in_use = 0
        self._lock = Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        with self._lock:
            return self._in_use

    @property
    def available(self) -> int:
        with self._lock:
            return self._capacity - self._in_use

    def is_saturated(self) -> bool:
        """Check if every slot is currently held"""
        with self._lock:
            return self._in_use >= self._capacity

    def try_reserve(self) -> bool:
        """
        Attempt to take a slot without blocking.

        Returns:
            True if a slot was reserved, False if all slots are in use
        """
        with self._lock:
            if self._in_use >= self._capacity:
                logger.debug(f"Admission denied ({self._in_use}/{self._capacity} in use)")
                return False
            self._in_use += 1
            return True

    def release(self):
        """
        Give back a slot taken by try_reserve().

        Raises:
            RuntimeError: If no slot is currently held
        """
        with self._lock:
            if self._in_use == 0:
                raise RuntimeError("release() called without a reserved slot")
            self._in_use -= 1
