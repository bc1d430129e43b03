"""Transcription service contract and the Google Speech-to-Text implementation."""

import time
import wave
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.oauth2 import service_account

from ..exceptions import TranscriptionError
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)


class AbstractTranscriptionService(ABC):
    """Turns a finalized WAV artifact into text."""

    def __init__(self, language: str = "en-US"):
        """Initialize service with language preference."""
        self.language = language

    @abstractmethod
    def transcribe(self, artifact_path: str) -> TranscriptionResult:
        """Transcribe a finalized WAV file.

        Args:
            artifact_path: Path of a Completed recording

        Returns:
            TranscriptionResult; empty text when no speech was recognized

        Raises:
            TranscriptionError: the service failed
        """
        pass

    def initialize(self) -> bool:
        """Initialize service resources and verify configuration."""
        return True


class GoogleSpeechTranscriptionService(AbstractTranscriptionService):
    """Google Speech-to-Text API transcription of short recordings."""

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 timeout: float = 10.0):
        """Initialize Google Speech service.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            timeout: Per-request timeout in seconds
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        if not self.credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.timeout = timeout
        self.client = None
        self.project_id = None
        self.service_name = "Google Speech-to-Text"

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)

        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")
        return True

    def _recognition_config(self, sample_rate: int, channels: int) -> speech.RecognitionConfig:
        return speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sample_rate,
            audio_channel_count=channels,
            language_code=self.language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            # Use model optimized for short audio
            model="latest_short",
        )

    def transcribe(self, artifact_path: str) -> TranscriptionResult:
        """Transcribe a WAV file using Google Speech-to-Text."""
        if self.client is None:
            self.initialize()

        start_time = time.time()
        with wave.open(artifact_path, 'rb') as wf:
            sample_rate = wf.getframerate()
            channels = wf.getnchannels()
            pcm = wf.readframes(wf.getnframes())

        logger.debug(f"Transcribing {artifact_path}: {len(pcm)} bytes, {sample_rate}Hz, "
                     f"{channels}ch, language={self.language}")

        audio = speech.RecognitionAudio(content=pcm)
        config = self._recognition_config(sample_rate, channels)
        try:
            response = self.client.recognize(config=config, audio=audio, timeout=self.timeout)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error(f"Google STT recognize deadline exceeded for {artifact_path}")
            raise TranscriptionError(f"Google Speech recognize timeout: {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error(f"Google STT service unavailable for {artifact_path}")
            raise TranscriptionError(f"Google Speech service unavailable: {e}") from e
        except gax_exceptions.GoogleAPICallError as e:
            logger.error(f"Google STT API call error for {artifact_path}: {e}")
            raise TranscriptionError(f"Google Speech API error: {e}") from e
        processing_time = time.time() - start_time

        if not response.results:
            logger.debug("--- NO SPEECH DETECTED ---")
            return TranscriptionResult(
                text="",
                confidence=0.0,
                processing_time=processing_time,
                timestamp=datetime.now(),
                service=self.service_name,
                language=self.language,
                audio_path=artifact_path,
            )

        # Long utterances come back split into several results
        best = [result.alternatives[0] for result in response.results if result.alternatives]
        text = " ".join(alt.transcript.strip() for alt in best).strip()
        confidence = min((alt.confidence for alt in best), default=0.0)
        alternatives = [
            {"text": alt.transcript, "confidence": alt.confidence}
            for alt in response.results[0].alternatives[1:5]
        ]
        logger.debug(f"Transcript='{text}' (conf={confidence:.2f}, "
                     f"processing_time={processing_time:.3f}s)")
        return TranscriptionResult(
            text=text,
            confidence=confidence,
            processing_time=processing_time,
            timestamp=datetime.now(),
            service=self.service_name,
            language=self.language,
            alternatives=alternatives or None,
            audio_path=artifact_path,
        )
