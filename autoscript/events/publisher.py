"""Session event publisher for pub/sub lifecycle notifications."""

import logging
from pubsub import pub
from ..models.events import SessionEvent

logger = logging.getLogger(__name__)

LIFECYCLE_TOPIC = "session.lifecycle"


class SessionEventPublisher:
    """Publishes session lifecycle events using pubsub.pub."""

    def __init__(self, topic: str = LIFECYCLE_TOPIC):
        """Initialize session event publisher.

        Args:
            topic: Pub/sub topic name for lifecycle events
        """
        self.topic = topic
        logger.debug(f"SessionEventPublisher initialized with topic: {topic}")

    def publish_session_event(self, event: SessionEvent) -> None:
        """Publish a lifecycle event to the pub/sub topic.

        Args:
            event: SessionEvent to publish
        """
        pub.sendMessage(self.topic, event=event)
        logger.debug(f"Published session event: {event.event_type} {event.session_id}")
