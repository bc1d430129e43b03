"""Transcription-related data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

BLANK_AUDIO_MARKERS = ("[BLANK_AUDIO]", "[NO_SPEECH_DETECTED]")


@dataclass
class TranscriptionResult:
    """Result of a transcription operation."""
    text: str
    confidence: float
    processing_time: float
    timestamp: datetime
    service: str
    language: str = "en-US"
    alternatives: Optional[list] = None
    audio_path: Optional[str] = None

    @property
    def is_blank(self) -> bool:
        """True when the service heard nothing usable."""
        text = self.text.strip()
        return not text or text.upper() in BLANK_AUDIO_MARKERS
