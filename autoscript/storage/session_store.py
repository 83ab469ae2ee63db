"""Session store: create, read, list and delete session artifacts."""

import logging
import os
from pathlib import Path
from typing import Iterator, List, Optional

from ..errors import AlreadyExists, SessionNotFound
from ..models.session import SessionArtifacts, SessionMetadata, SessionSummary, NO_MESSAGE
from ..models.events import SessionEvent
from ..events.publisher import SessionEventPublisher
from .layout import (
    transcript_path,
    timings_path,
    metadata_path,
    parse_transcript_name,
)
from .lock import SessionLock

logger = logging.getLogger(__name__)

# Transcripts may contain anything typed at the terminal
ARTIFACT_MODE = 0o600

# Metadata keys in the order they are written
METADATA_KEYS = ("DATE", "SYSTEM", "USER", "MESSAGE")


class SessionListing:
    """Sessions in a storage root, ordered by ID.

    Each iteration rescans the directory, so the same listing object can be
    iterated again to pick up sessions created or deleted in the meantime.
    """

    def __init__(self, store: "SessionStore"):
        self.store = store

    def __iter__(self) -> Iterator[SessionSummary]:
        for session_id in self.store.session_ids():
            metadata = self.store.read_metadata(metadata_path(self.store.root, session_id))
            yield SessionSummary(
                session_id=session_id,
                date=metadata.date,
                message=metadata.message,
                locked=self.store.lock.is_held(session_id),
            )


class SessionStore:
    """Manages the transcript/timings/metadata files of each session."""

    def __init__(self, root: Path, lock: Optional[SessionLock] = None,
                 publisher: Optional[SessionEventPublisher] = None):
        """Initialize session store.

        Args:
            root: Storage root (must already exist)
            lock: Lock used for listing status and delete; defaults to one on ``root``
            publisher: Receives a "deleted" event for every removed session
        """
        self.root = Path(root)
        self.lock = lock or SessionLock(self.root)
        self.publisher = publisher

    def paths(self, session_id: int, with_timings: bool = True) -> SessionArtifacts:
        """Get the artifact paths for a session, whether or not they exist."""
        return SessionArtifacts(
            session_id=session_id,
            transcript=transcript_path(self.root, session_id),
            timings=timings_path(self.root, session_id) if with_timings else None,
            metadata=metadata_path(self.root, session_id),
        )

    def exists(self, session_id: int) -> bool:
        return transcript_path(self.root, session_id).is_file()

    def has_timings(self, session_id: int) -> bool:
        return timings_path(self.root, session_id).exists()

    def create(self, session_id: int, with_timings: bool = False) -> SessionArtifacts:
        """Create empty artifact files for a new session.

        Either every requested file is created or none is left behind.

        Args:
            session_id: ID returned by the allocator
            with_timings: Also create the timings file

        Returns:
            SessionArtifacts with the created paths

        Raises:
            AlreadyExists: One of the target files is already present
        """
        artifacts = self.paths(session_id, with_timings=with_timings)
        targets = [artifacts.transcript, artifacts.metadata]
        if artifacts.timings is not None:
            targets.append(artifacts.timings)

        for target in targets:
            if os.path.lexists(target):
                raise AlreadyExists(target)

        created: List[Path] = []
        try:
            for target in targets:
                self._create_empty(target)
                created.append(target)
        except BaseException:
            for path in created:
                path.unlink()
            raise

        logger.info(f"Created session {session_id} artifacts in {self.root}")
        return artifacts

    @staticmethod
    def _create_empty(path: Path) -> None:
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, ARTIFACT_MODE)
        except FileExistsError:
            raise AlreadyExists(path)
        os.close(fd)

    def write_metadata(self, path: Path, metadata: SessionMetadata) -> None:
        """Append the metadata lines for a session.

        Call exactly once, right after create(); a second call duplicates
        every key.
        """
        values = {
            "DATE": metadata.date,
            "SYSTEM": metadata.system,
            "USER": metadata.user,
            "MESSAGE": metadata.message,
        }
        with open(path, 'a', encoding='utf-8') as f:
            for key in METADATA_KEYS:
                f.write(f"{key}={_one_line(values[key])}\n")
        logger.debug(f"Wrote metadata: {path}")

    def read_metadata(self, path: Path) -> SessionMetadata:
        """Parse KEY=VALUE lines. Unknown keys and malformed lines are ignored.

        Args:
            path: Metadata file; a missing file yields the defaults

        Returns:
            SessionMetadata with unset fields defaulted
        """
        fields = {}
        try:
            with open(path, 'r', encoding='utf-8', errors='replace') as f:
                for line in f:
                    key, sep, value = line.rstrip("\n").partition("=")
                    if sep and key in METADATA_KEYS:
                        fields[key] = value
        except FileNotFoundError:
            logger.warning(f"Metadata file not found: {path}")

        return SessionMetadata(
            date=fields.get("DATE", ""),
            system=fields.get("SYSTEM", ""),
            user=fields.get("USER", ""),
            message=fields.get("MESSAGE") or NO_MESSAGE,
        )

    def session_ids(self) -> List[int]:
        """IDs of every session with a transcript, ascending."""
        ids = []
        for entry in self.root.iterdir():
            session_id = parse_transcript_name(entry.name)
            if session_id is not None and entry.is_file():
                ids.append(session_id)
        return sorted(ids)

    def list(self) -> SessionListing:
        """List sessions in numeric ID order."""
        return SessionListing(self)

    def delete(self, session_id: int) -> None:
        """Remove every artifact of a session.

        The lock is taken for the duration of the removal, so a session that
        is being recorded or resumed is refused.

        Raises:
            SessionNotFound: No transcript for ``session_id``
            AlreadyLocked: Another process holds the session's lock
        """
        if not self.exists(session_id):
            raise SessionNotFound(session_id)

        artifacts = self.paths(session_id)
        with self.lock.hold(session_id):
            artifacts.transcript.unlink()
            try:
                artifacts.metadata.unlink()
            except FileNotFoundError:
                logger.warning(f"Session {session_id} had no metadata file")
            try:
                artifacts.timings.unlink()
            except FileNotFoundError:
                pass

        logger.info(f"Deleted session {session_id}")
        if self.publisher is not None:
            self.publisher.publish_session_event(
                SessionEvent(event_type="deleted", session_id=session_id, mode="delete")
            )


def _one_line(value: str) -> str:
    return " ".join(str(value).splitlines())
