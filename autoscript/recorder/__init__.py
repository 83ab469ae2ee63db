"""External recorder/replayer programs and transcript filters."""

from .runner import Recorder, Replayer
from .ansi import strip_ansi

__all__ = ["Recorder", "Replayer", "strip_ansi"]
