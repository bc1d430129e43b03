"""Recording session state and outcome models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .audio import CapturedArtifact, DeviceInfo


class RecordingState(Enum):
    """Lifecycle of a RecordingController."""
    WAITING_FOR_TRIGGER = "waiting_for_trigger"
    RECORDING = "recording"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = {
    RecordingState.COMPLETED,
    RecordingState.CANCELLED,
    RecordingState.REJECTED,
    RecordingState.FAILED,
}


class StopReason(Enum):
    """Why a recording stopped. Lower precedence value wins a tie."""
    CANCEL = "cancel"
    MANUAL_STOP = "manual_stop"
    SILENCE_TIMEOUT = "silence_timeout"
    HARD_CAP = "hard_cap"

    @property
    def precedence(self) -> int:
        return _PRECEDENCE[self]


_PRECEDENCE = {
    StopReason.CANCEL: 0,
    StopReason.MANUAL_STOP: 1,
    StopReason.SILENCE_TIMEOUT: 2,
    StopReason.HARD_CAP: 3,
}


class RejectReason(Enum):
    """Why a finalized recording was not handed to the caller."""
    TOO_SHORT = "too_short"
    SILENCE_ONLY = "silence_only"


@dataclass
class RecordingSession:
    """Per-session counters driven by the stream of classified frames."""
    sample_rate: int
    channels: int
    buffer_window_ms: int
    device: Optional[DeviceInfo] = None
    voiced_ms: float = 0.0
    silence_ms: float = 0.0
    total_ms: float = 0.0
    started_speech: bool = False
    frames_seen: int = 0
    frames_dropped: int = 0
    state: RecordingState = RecordingState.WAITING_FOR_TRIGGER

    def observe(self, voiced: bool, frame_ms: float) -> None:
        """Fold one classified frame into the counters."""
        if voiced:
            self.started_speech = True
            self.voiced_ms += frame_ms
            self.silence_ms = 0.0
        elif self.started_speech:
            self.silence_ms += frame_ms
        self.total_ms += frame_ms
        self.frames_seen += 1


@dataclass(frozen=True)
class Completed:
    """A finalized artifact now owned by the caller."""
    artifact: CapturedArtifact
    stop_reason: StopReason

    @property
    def artifact_path(self) -> str:
        return self.artifact.path

    @property
    def duration_ms(self) -> float:
        return self.artifact.duration_ms


@dataclass(frozen=True)
class Cancelled:
    """User-driven termination. Not an error and never a transcription input."""
    stop_reason: StopReason = StopReason.CANCEL


@dataclass(frozen=True)
class Rejected:
    """Recording finished but was too short or silence only; artifact deleted."""
    reason: RejectReason
    stop_reason: StopReason
    duration_ms: float = 0.0
    message: str = field(default="")

    def __post_init__(self):
        if not self.message:
            text = ("Recording too short. Please speak a bit longer."
                    if self.reason is RejectReason.TOO_SHORT
                    else "Recording too short or silence only. Please try again.")
            object.__setattr__(self, "message", text)


RecordingOutcome = Union[Completed, Cancelled, Rejected]
