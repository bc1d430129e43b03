"""Event models published on pub/sub topics while recording."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Any, Dict

from .session import RecordingState, StopReason


@dataclass
class LevelEvent:
    """Input level of one frame, used by live meters."""
    sequence_number: int
    energy: float
    peak: float
    rms: float
    voiced: bool
    total_ms: float
    timestamp: float


@dataclass
class StateEvent:
    """Controller state transition."""
    session_id: str
    state: RecordingState
    stop_reason: Optional[StopReason] = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)
