"""Data models for the speak2me application."""

from .audio import AudioFrame, AudioStats, CapturedArtifact, DeviceInfo
from .events import LevelEvent, StateEvent
from .session import (
    Cancelled,
    Completed,
    RecordingOutcome,
    RecordingSession,
    RecordingState,
    Rejected,
    RejectReason,
    StopReason,
)
from .transcription import TranscriptionResult

__all__ = [
    "AudioFrame",
    "AudioStats",
    "CapturedArtifact",
    "DeviceInfo",
    "LevelEvent",
    "StateEvent",
    # Recording lifecycle
    "RecordingSession",
    "RecordingState",
    "StopReason",
    "RejectReason",
    "RecordingOutcome",
    "Completed",
    "Cancelled",
    "Rejected",
    "TranscriptionResult",
]
