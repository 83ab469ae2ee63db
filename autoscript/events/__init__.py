"""Session lifecycle events over pypubsub."""

from .publisher import SessionEventPublisher, LIFECYCLE_TOPIC

__all__ = ["SessionEventPublisher", "LIFECYCLE_TOPIC"]
