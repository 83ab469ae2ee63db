"""Session ID allocation by scanning the storage root."""

import logging
from pathlib import Path

from .layout import parse_transcript_name

logger = logging.getLogger(__name__)


def next_session_id(root: Path) -> int:
    """Return one past the highest session ID with a transcript in ``root``.

    Gaps left by deleted sessions are never filled, but deleting the
    highest-numbered session makes its ID available again. Every entry with a
    transcript name counts, session or not, since ``create`` refuses to reuse
    the name.
    """
    highest = 0
    for entry in Path(root).iterdir():
        session_id = parse_transcript_name(entry.name)
        if session_id is not None and session_id > highest:
            highest = session_id

    logger.debug(f"Highest existing session ID in {root}: {highest}")
    return highest + 1
