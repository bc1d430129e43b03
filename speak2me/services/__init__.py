"""Services layer for speak2me application logic."""

from .recording_service import RecordingService
from .reply_service import (
    AbstractReplyService,
    ChatApiReplyService,
    FallbackReplyService,
    LlmReplyService,
)
from .transcription_service import AbstractTranscriptionService, GoogleSpeechTranscriptionService

__all__ = [
    "RecordingService",
    "AbstractTranscriptionService",
    "GoogleSpeechTranscriptionService",
    "AbstractReplyService",
    "ChatApiReplyService",
    "LlmReplyService",
    "FallbackReplyService",
]
