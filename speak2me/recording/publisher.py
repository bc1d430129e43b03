"""Recording event publisher for pub/sub consumers such as live meters."""

import logging
from pubsub import pub

from ..models.events import LevelEvent, StateEvent

logger = logging.getLogger(__name__)

STATE_TOPIC = "recording.state"
LEVEL_TOPIC = "recording.level"


def _topic_prototype(event):
    """Message data specification shared by the recording topics."""


class RecordingPublisher:
    """Publishes controller state changes and frame levels using pubsub.pub."""

    def __init__(self, state_topic: str = STATE_TOPIC, level_topic: str = LEVEL_TOPIC):
        """Initialize recording publisher.

        Args:
            state_topic: Pub/sub topic name for state transitions
            level_topic: Pub/sub topic name for per-frame input levels
        """
        self.state_topic = state_topic
        self.level_topic = level_topic

        topic_manager = pub.getDefaultTopicMgr()
        for topic in (state_topic, level_topic):
            topic_manager.getOrCreateTopic(topic, _topic_prototype)
        logger.debug(f"RecordingPublisher initialized with topics: {state_topic}, {level_topic}")

    def publish_state(self, event: StateEvent) -> None:
        pub.sendMessage(self.state_topic, event=event)

    def publish_level(self, event: LevelEvent) -> None:
        pub.sendMessage(self.level_topic, event=event)
