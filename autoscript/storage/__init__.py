"""On-disk session storage: directory, IDs, locks and artifacts."""

from .directory import ensure_storage_directory, STORAGE_MODE
from .allocator import next_session_id
from .lock import SessionLock
from .session_store import SessionStore, SessionListing

__all__ = [
    "ensure_storage_directory",
    "STORAGE_MODE",
    "next_session_id",
    "SessionLock",
    "SessionStore",
    "SessionListing",
]
