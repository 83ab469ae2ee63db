"""Services layer: session recording, replay and resume."""

from .recording_service import RecordingService
from .replay_service import ReplayService

__all__ = [
    "RecordingService",
    "ReplayService",
]
