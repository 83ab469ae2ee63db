"""Read-only replay and write-resuming access to existing sessions."""

import logging
import shutil
import sys
import tempfile
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Optional

from ..config import SessionContext
from ..errors import (
    MissingTimings,
    NestedSessionError,
    SessionNotFound,
    TimingsResumeUnsupported,
    UnsupportedCombination,
)
from ..events.publisher import SessionEventPublisher
from ..models.events import SessionEvent
from ..models.session import SessionRun
from ..recorder.ansi import strip_ansi as strip_escapes
from ..recorder.runner import Recorder, Replayer, exit_on_termination
from ..storage.directory import ensure_storage_directory
from ..storage.lock import SessionLock
from ..storage.session_store import SessionStore

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


class ReplayService:
    """Replays or resumes sessions that already exist."""

    def __init__(self, context: SessionContext, recorder: Recorder, replayer: Replayer,
                 publisher: Optional[SessionEventPublisher] = None):
        self.context = context
        self.recorder = recorder
        self.replayer = replayer
        self.publisher = publisher or SessionEventPublisher()
        self.lock = SessionLock(context.storage_root)
        self.store = SessionStore(context.storage_root, self.lock, self.publisher)

    def replay(self, session_id: int, timed: bool = False, strip_ansi: bool = False,
               output: Optional[BinaryIO] = None) -> int:
        """Play a session back.

        The artifacts are copied to a private temporary directory first, so a
        recorder still appending to them cannot cause torn reads. The copy is
        removed however replay ends.

        Args:
            session_id: Session to replay
            timed: Pace output with the recorded timing data via the replayer
            strip_ansi: Remove escape sequences from the transcript
            output: Destination for untimed replay; defaults to binary stdout

        Returns:
            Replayer exit code for timed replay, 0 otherwise

        Raises:
            UnsupportedCombination: Both timed and strip_ansi requested
            SessionNotFound: No transcript for session_id
            MissingTimings: Timed replay of a session without timings
        """
        if timed and strip_ansi:
            raise UnsupportedCombination(
                "Cannot strip escape sequences from a timed replay; "
                "the timing data refers to the raw byte stream"
            )

        artifacts = self.store.paths(session_id)
        if not self.store.exists(session_id):
            raise SessionNotFound(session_id)
        if timed and not artifacts.timings.is_file():
            raise MissingTimings(session_id)

        with tempfile.TemporaryDirectory(prefix=f"autoscript-{session_id}-") as tmp:
            transcript_copy = Path(tmp) / artifacts.transcript.name
            shutil.copyfile(artifacts.transcript, transcript_copy)
            logger.debug(f"Copied {artifacts.transcript} to {transcript_copy}")

            if timed:
                timings_copy = Path(tmp) / artifacts.timings.name
                shutil.copyfile(artifacts.timings, timings_copy)
                return self.replayer.run(timings_copy, transcript_copy)

            self._write_transcript(transcript_copy, output, strip_ansi)
            return 0

    @staticmethod
    def _write_transcript(transcript: Path, output: Optional[BinaryIO], strip_ansi: bool) -> None:
        if output is None:
            output = sys.stdout.buffer

        with open(transcript, 'rb') as f:
            if strip_ansi:
                # Escape sequences may straddle chunk boundaries
                output.write(strip_escapes(f.read()))
            else:
                shutil.copyfileobj(f, output, COPY_CHUNK_SIZE)
        output.flush()

    def resume(self, session_id: int, quiet: bool = False) -> SessionRun:
        """Continue recording into an existing session.

        Args:
            session_id: Session to append to
            quiet: Ask the recorder not to print its banners

        Returns:
            SessionRun describing the resumed recording

        Raises:
            NestedSessionError: This process already runs inside a session
            SessionNotFound: No transcript for session_id
            TimingsResumeUnsupported: Session was recorded with timings
            PermissionMismatch: Storage root mode has drifted from 0700
            AlreadyLocked: Another process is writing the session
        """
        if self.context.inside_session:
            raise NestedSessionError(self.context.current_session, "resume")

        artifacts = self.store.paths(session_id, with_timings=False)
        if not self.store.exists(session_id):
            raise SessionNotFound(session_id)
        if self.store.has_timings(session_id):
            raise TimingsResumeUnsupported(session_id)
        ensure_storage_directory(self.context.storage_root)

        with exit_on_termination(), self.lock.hold(session_id):
            started_at = datetime.now()
            exit_code = None
            self.publisher.publish_session_event(SessionEvent(
                event_type="started",
                session_id=session_id,
                mode="resume",
                timestamp=started_at,
            ))
            try:
                exit_code = self.recorder.run(
                    artifacts.transcript,
                    session_id,
                    append=True,
                    quiet=quiet,
                )
            finally:
                ended_at = datetime.now()
                self.publisher.publish_session_event(SessionEvent(
                    event_type="stopped",
                    session_id=session_id,
                    mode="resume",
                    timestamp=ended_at,
                    metadata={"exit_code": exit_code},
                ))

        if exit_code != 0:
            logger.warning(f"Recorder for session {session_id} exited with status {exit_code}")

        return SessionRun(
            session_id=session_id,
            mode="resume",
            exit_code=exit_code,
            started_at=started_at,
            ended_at=ended_at,
        )
