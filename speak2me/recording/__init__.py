"""Recording state machine and stop arbitration."""

from .control import ControlSignal
from .controller import RecordingController
from .publisher import RecordingPublisher, LEVEL_TOPIC, STATE_TOPIC

__all__ = [
    'ControlSignal',
    'RecordingController',
    'RecordingPublisher',
    'LEVEL_TOPIC',
    'STATE_TOPIC',
]
