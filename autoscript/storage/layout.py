"""File naming for session artifacts inside the storage root."""

import re
from pathlib import Path
from typing import Optional

TRANSCRIPT_SUFFIX = ".transcript"
TIMINGS_SUFFIX = ".timings"
METADATA_SUFFIX = ".metadata.txt"
LOCK_SUFFIX = ".lock"

_TRANSCRIPT_NAME_RE = re.compile(r"^(\d+)" + re.escape(TRANSCRIPT_SUFFIX) + r"$")


def transcript_path(root: Path, session_id: int) -> Path:
    return root / f"{session_id}{TRANSCRIPT_SUFFIX}"


def timings_path(root: Path, session_id: int) -> Path:
    return root / f"{session_id}{TIMINGS_SUFFIX}"


def metadata_path(root: Path, session_id: int) -> Path:
    return root / f"{session_id}{METADATA_SUFFIX}"


def lock_path(root: Path, session_id: int) -> Path:
    return root / f"{session_id}{LOCK_SUFFIX}"


def parse_transcript_name(name: str) -> Optional[int]:
    """Return the session ID encoded in a transcript filename, or None."""
    match = _TRANSCRIPT_NAME_RE.match(name)
    if not match:
        return None
    session_id = int(match.group(1))
    return session_id if session_id > 0 else None
