"""
Process-wide mutual exclusion for store operations.

One lock guards every sheet of every workbook: operations on unrelated
sheets serialize with each other. The lock is not re-entrant and is only
ever taken through ``hold()``, which bounds the wait and guarantees
release on every exit path.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sheetstore.errors import LockTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 30.0


class StoreLock:
    """Timed, scoped wrapper around a non-reentrant lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @contextmanager
    def hold(self, timeout: float = DEFAULT_LOCK_TIMEOUT, operation: str = "") -> Iterator[None]:
        """
        Hold the lock for the duration of the block.

        Args:
            timeout: Seconds to wait before giving up
            operation: Name used in logs and in the timeout error

        Raises:
            LockTimeoutError: If the lock was not acquired within timeout
        """
        if not self._lock.acquire(timeout=timeout):
            logger.warning(
                f"The call to {operation or 'operation'} timed out after {timeout:g}s "
                "because the store was in use"
            )
            raise LockTimeoutError(operation=operation, timeout_seconds=timeout)
        try:
            yield
        finally:
            self._lock.release()

    @property
    def locked(self) -> bool:
        """Whether some caller currently holds the lock."""
        return self._lock.locked()


# Global lock shared by every coordinator in the process
default_lock = StoreLock()
