"""Session-related data models."""

import getpass
import platform
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional

# Placeholder shown when a session was recorded without a message
NO_MESSAGE = "-"


@dataclass
class SessionMetadata:
    """Key/value record written once when a session is created."""
    date: str = ""
    system: str = ""
    user: str = ""
    message: str = NO_MESSAGE

    @classmethod
    def capture(cls, message: Optional[str] = None) -> "SessionMetadata":
        """Build metadata describing a session that starts now on this host.

        Args:
            message: Free-text description; blank or missing becomes ``-``

        Returns:
            SessionMetadata for the current date, host and user
        """
        return cls(
            date=datetime.now().isoformat(timespec="seconds"),
            system=platform.node(),
            user=_current_user(),
            message=normalize_message(message),
        )


@dataclass
class SessionArtifacts:
    """Paths of the files backing one session."""
    session_id: int
    transcript: Path
    timings: Optional[Path]
    metadata: Path


@dataclass
class SessionSummary:
    """One row of the session listing."""
    session_id: int
    date: str
    message: str
    locked: bool


@dataclass
class SessionRun:
    """Outcome of handing a session to the recorder."""
    session_id: int
    mode: str  # "record" or "resume"
    exit_code: int
    started_at: datetime
    ended_at: datetime


def normalize_message(message: Optional[str]) -> str:
    """Collapse a message onto one line; empty means no message."""
    if message is None:
        return NO_MESSAGE
    flattened = " ".join(message.split())
    return flattened or NO_MESSAGE


def _current_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        # No passwd entry and no LOGNAME/USER in the environment
        return ""
