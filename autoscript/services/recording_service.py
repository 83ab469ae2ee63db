"""Recording service that manages a new session from allocation to unlock."""

import logging
from datetime import datetime
from typing import Optional

from ..config import SessionContext
from ..errors import LockError, NestedSessionError
from ..events.publisher import SessionEventPublisher
from ..models.events import SessionEvent
from ..models.session import SessionMetadata, SessionRun
from ..recorder.runner import Recorder, exit_on_termination
from ..storage.allocator import next_session_id
from ..storage.directory import ensure_storage_directory
from ..storage.lock import SessionLock
from ..storage.session_store import SessionStore

logger = logging.getLogger(__name__)


class RecordingService:
    """Creates a session and hands the terminal to the recorder.

    Idle -> Allocating -> FilesCreated -> Locked -> Recording -> Unlocked -> Done
    """

    def __init__(self, context: SessionContext, recorder: Recorder,
                 publisher: Optional[SessionEventPublisher] = None):
        """Initialize recording service.

        Args:
            context: Storage root and inherited session identity
            recorder: External recorder wrapper
            publisher: Receives "started"/"stopped" lifecycle events
        """
        self.context = context
        self.recorder = recorder
        self.publisher = publisher or SessionEventPublisher()
        self.lock = SessionLock(context.storage_root)
        self.store = SessionStore(context.storage_root, self.lock, self.publisher)
        self.state = "idle"

    def record(self, message: Optional[str] = None, with_timings: bool = False,
               quiet: bool = False) -> SessionRun:
        """Record a new session.

        Blocks until the recorder exits. Its exit status is reported in the
        result, never raised.

        Args:
            message: Free-text description stored in the metadata
            with_timings: Capture timing data for paced replay
            quiet: Ask the recorder not to print its banners

        Returns:
            SessionRun describing the finished recording

        Raises:
            NestedSessionError: This process already runs inside a session
            AlreadyExists: Artifacts for the allocated ID appeared concurrently
        """
        if self.context.inside_session:
            raise NestedSessionError(self.context.current_session, "record")

        ensure_storage_directory(self.context.storage_root)

        self.state = "allocating"
        session_id = next_session_id(self.context.storage_root)
        logger.info(f"Allocated session {session_id}")

        artifacts = self.store.create(session_id, with_timings=with_timings)
        self.store.write_metadata(artifacts.metadata, SessionMetadata.capture(message))
        self.state = "files_created"

        with exit_on_termination():
            if not self.lock.acquire(session_id):
                raise LockError(f"Lock for new session {session_id} is unexpectedly held")
            self.state = "locked"

            started_at = datetime.now()
            exit_code = None
            try:
                self.publisher.publish_session_event(SessionEvent(
                    event_type="started",
                    session_id=session_id,
                    mode="record",
                    timestamp=started_at,
                    metadata={"timings": with_timings, "transcript": str(artifacts.transcript)},
                ))
                self.state = "recording"
                exit_code = self.recorder.run(
                    artifacts.transcript,
                    session_id,
                    timings=artifacts.timings,
                    quiet=quiet,
                )
            finally:
                self.lock.release(session_id)
                self.state = "unlocked"
                ended_at = datetime.now()
                self.publisher.publish_session_event(SessionEvent(
                    event_type="stopped",
                    session_id=session_id,
                    mode="record",
                    timestamp=ended_at,
                    metadata={"exit_code": exit_code},
                ))

        self.state = "done"
        if exit_code != 0:
            logger.warning(f"Recorder for session {session_id} exited with status {exit_code}")

        return SessionRun(
            session_id=session_id,
            mode="record",
            exit_code=exit_code,
            started_at=started_at,
            ended_at=ended_at,
        )
