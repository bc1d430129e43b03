"""Voice-activated recording state machine."""

import time
import uuid
import logging
import threading
from pathlib import Path
from typing import Optional

from ..audio.energy import EnergyDetector, FrameClassification
from ..audio.sink import StreamSink
from ..config import CaptureConfig
from ..models.audio import AudioFrame, CapturedArtifact
from ..models.events import LevelEvent, StateEvent
from ..models.session import (
    Cancelled,
    Completed,
    RecordingOutcome,
    RecordingSession,
    RecordingState,
    Rejected,
    RejectReason,
    StopReason,
)
from .control import ControlSignal
from .publisher import RecordingPublisher

logger = logging.getLogger(__name__)


class RecordingController:
    """Runs one recording session from trigger to a terminal outcome.

    The capture object must provide start(), stop() and read_frame(timeout);
    AudioCaptureSession is the real implementation; stop() must also work
    on a session that was never started. record() drains frames
    on the calling thread while begin(), request_stop() and cancel() may be
    called from any other thread.

    Usage:
        controller = RecordingController(capture, sink, capture_config)
        outcome = controller.record()
        if isinstance(outcome, Completed):
            transcribe(outcome.artifact_path)
    """

    def __init__(
        self,
        capture,
        sink: StreamSink,
        capture_config: CaptureConfig,
        detector: Optional[EnergyDetector] = None,
        signal: Optional[ControlSignal] = None,
        publisher: Optional[RecordingPublisher] = None,
        session_id: Optional[str] = None,
    ):
        self.capture = capture
        self.sink = sink
        self.config = capture_config
        self.detector = detector or EnergyDetector.from_capture_config(capture_config)
        self.signal = signal or ControlSignal()
        self.publisher = publisher or RecordingPublisher()
        self.session_id = session_id or uuid.uuid4().hex[:8]

        self.session = RecordingSession(
            sample_rate=capture_config.sample_rate,
            channels=capture_config.channels,
            buffer_window_ms=capture_config.buffer_window_ms,
            device=getattr(capture, "device", None),
        )
        self.outcome: Optional[RecordingOutcome] = None

        self._frame_timeout = capture_config.buffer_window_ms / 1000.0
        self._start_event = threading.Event()
        self._used = False
        self._use_lock = threading.Lock()

    @property
    def state(self) -> RecordingState:
        return self.session.state

    @property
    def stop_reason(self) -> Optional[StopReason]:
        return self.signal.reason

    # Control inputs, callable from any thread

    def begin(self) -> None:
        """Start trigger for record(wait_for_start=True)."""
        self._start_event.set()

    def request_stop(self) -> bool:
        return self.signal.trigger(StopReason.MANUAL_STOP)

    def cancel(self) -> bool:
        return self.signal.trigger(StopReason.CANCEL)

    def record(self, wait_for_start: bool = False) -> RecordingOutcome:
        """Record until a stop condition wins and return the terminal outcome.

        Blocks until the artifact is finalized (or discarded). Device and I/O
        failures propagate after the partial artifact has been abandoned.

        Args:
            wait_for_start: Stay in WAITING_FOR_TRIGGER until begin() is called
        """
        with self._use_lock:
            if self._used:
                raise RuntimeError("RecordingController instances are single-use")
            self._used = True

        self._publish_state()
        try:
            if wait_for_start and not self._await_start():
                return self._finish_cancelled()
            if self.signal.reason is StopReason.CANCEL:
                return self._finish_cancelled()

            self._set_state(RecordingState.RECORDING)
            self.signal.arm_timer(self.config.max_duration_ms / 1000.0, StopReason.HARD_CAP)
            try:
                self.capture.start()
                self._consume_frames()
            finally:
                self.signal.disarm_timer()

            reason = self.signal.reason
            if reason is StopReason.CANCEL:
                return self._finish_cancelled()
            return self._finish(reason)
        except Exception:
            self._fail()
            raise

    def _await_start(self) -> bool:
        """Wait for begin(); False if cancelled first."""
        logger.info("Waiting for start trigger")
        while not self._start_event.is_set():
            if self.signal.wait(timeout=self._frame_timeout) is not None:
                break
        return self.signal.reason is not StopReason.CANCEL

    def _consume_frames(self) -> None:
        while not self.signal.is_set():
            frame = self.capture.read_frame(timeout=self._frame_timeout)
            if frame is None:
                continue
            if self.signal.is_set():
                # Arrived after the outcome was decided
                self.session.frames_dropped += 1
                break
            self._process_frame(frame)

    def _process_frame(self, frame: AudioFrame) -> None:
        classification = self.detector.classify(frame, self.session.started_speech)
        self.sink.append(frame)
        self.session.observe(classification.voiced, frame.duration_ms)
        self._publish_level(frame, classification)
        self._evaluate_stop()

    def _evaluate_stop(self) -> None:
        """Trigger frame-driven stop conditions. Cancel and manual stop arrive via the signal."""
        session = self.session
        silence_timeout = None
        if (session.started_speech
                and session.voiced_ms >= self.config.min_speech_ms
                and session.silence_ms >= self.config.silence_hang_ms):
            silence_timeout = StopReason.SILENCE_TIMEOUT
        hard_cap = StopReason.HARD_CAP if session.total_ms >= self.config.max_duration_ms else None
        self.signal.trigger_first(silence_timeout, hard_cap)

    def _finish(self, reason: StopReason) -> RecordingOutcome:
        self._set_state(RecordingState.FINALIZING, reason)
        # The header may only be written once no more frames can arrive
        self.capture.stop()
        artifact = self.sink.finalize()

        reject_reason = self._validate(artifact, reason)
        if reject_reason is not None:
            Path(artifact.path).unlink(missing_ok=True)
            logger.info(f"Recording rejected ({reject_reason.value}): "
                        f"{artifact.duration_ms:.0f}ms, {artifact.data_bytes} bytes")
            self.outcome = Rejected(reason=reject_reason, stop_reason=reason,
                                    duration_ms=artifact.duration_ms)
            self._set_state(RecordingState.REJECTED, reason)
            return self.outcome

        self.outcome = Completed(artifact=artifact, stop_reason=reason)
        self._set_state(RecordingState.COMPLETED, reason)
        return self.outcome

    def _validate(self, artifact: CapturedArtifact, reason: StopReason) -> Optional[RejectReason]:
        if reason is StopReason.HARD_CAP and not self.session.started_speech:
            return RejectReason.SILENCE_ONLY
        if artifact.data_bytes < self.config.min_artifact_bytes:
            return RejectReason.TOO_SHORT
        return None

    def _finish_cancelled(self) -> RecordingOutcome:
        # Also releases a device that was opened but never started
        self.capture.stop()
        self.sink.abandon()
        self.outcome = Cancelled()
        self._set_state(RecordingState.CANCELLED, StopReason.CANCEL)
        return self.outcome

    def _fail(self) -> None:
        logger.error(f"Recording session {self.session_id} failed, discarding partial recording")
        self.signal.disarm_timer()
        try:
            self.capture.stop()
        finally:
            self.sink.abandon()
            # A finalized artifact is never handed back from a failed session
            Path(self.sink.path).unlink(missing_ok=True)
            self.outcome = None
            self._set_state(RecordingState.FAILED, self.signal.reason)

    def _set_state(self, state: RecordingState, reason: Optional[StopReason] = None) -> None:
        logger.debug(f"Session {self.session_id}: {self.session.state.value} -> {state.value}")
        self.session.state = state
        self._publish_state(reason)

    def _publish_state(self, reason: Optional[StopReason] = None) -> None:
        self.publisher.publish_state(StateEvent(
            session_id=self.session_id,
            state=self.session.state,
            stop_reason=reason,
            metadata={
                "voiced_ms": self.session.voiced_ms,
                "silence_ms": self.session.silence_ms,
                "total_ms": self.session.total_ms,
            },
        ))

    def _publish_level(self, frame: AudioFrame, classification: FrameClassification) -> None:
        self.publisher.publish_level(LevelEvent(
            sequence_number=frame.sequence_number,
            energy=classification.energy,
            peak=classification.peak,
            rms=classification.rms,
            voiced=classification.voiced,
            total_ms=self.session.total_ms,
            timestamp=time.time(),
        ))
