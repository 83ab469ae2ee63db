"""Data models for autoscript."""

from .session import SessionMetadata, SessionArtifacts, SessionSummary, SessionRun
from .events import SessionEvent

__all__ = [
    "SessionMetadata",
    "SessionArtifacts",
    "SessionSummary",
    "SessionRun",
    "SessionEvent",
]
