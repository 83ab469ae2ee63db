"""Advisory per-session lock built on atomic directory creation."""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..errors import AlreadyLocked, LockNotHeld
from .layout import lock_path

logger = logging.getLogger(__name__)


class SessionLock:
    """Cross-process mutual exclusion for writers of a session.

    ``mkdir`` either creates the marker or fails because it already exists,
    so two processes racing for the same ID cannot both win. A marker left
    behind by a killed process has to be removed by hand.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def acquire(self, session_id: int) -> bool:
        """Try to take the lock.

        Returns:
            True if this call created the marker, False if it was already held

        Raises:
            OSError: Any failure other than the marker already existing
        """
        marker = lock_path(self.root, session_id)
        try:
            marker.mkdir(mode=0o700)
        except FileExistsError:
            logger.debug(f"Lock already held: {marker}")
            return False
        logger.debug(f"Acquired lock: {marker}")
        return True

    def release(self, session_id: int) -> None:
        """Remove the marker. Releasing a lock that is not held is a bug."""
        marker = lock_path(self.root, session_id)
        try:
            marker.rmdir()
        except FileNotFoundError:
            raise LockNotHeld(session_id)
        logger.debug(f"Released lock: {marker}")

    def is_held(self, session_id: int) -> bool:
        """Racy existence check, for display only. Never gate acquire() on it."""
        return lock_path(self.root, session_id).exists()

    @contextmanager
    def hold(self, session_id: int) -> Iterator[None]:
        """Hold the lock for the duration of the block.

        Raises:
            AlreadyLocked: Another process holds the lock
        """
        if not self.acquire(session_id):
            raise AlreadyLocked(session_id)
        try:
            yield
        finally:
            self.release(session_id)
