"""Recording service that wires a capture session, sink and controller together."""

import logging
from typing import List, Optional

import pyaudio

from ..audio.capture import AudioCaptureSession
from ..audio.devices import list_input_devices
from ..audio.sink import StreamSink, new_recording_path
from ..config import CaptureConfig
from ..models.audio import DeviceInfo
from ..recording.controller import RecordingController
from ..recording.publisher import RecordingPublisher

logger = logging.getLogger(__name__)


class RecordingService:
    """Creates one RecordingController per utterance from a fixed CaptureConfig."""

    def __init__(self, capture_config: CaptureConfig, publisher: Optional[RecordingPublisher] = None):
        """Initialize recording service.

        Args:
            capture_config: Validated capture tunables
            publisher: Publisher shared by every controller this service creates
        """
        self.capture_config = capture_config
        self.publisher = publisher or RecordingPublisher()

    def device_selector(self):
        """Explicit index if configured, otherwise the preferred device names."""
        if self.capture_config.device_index is not None:
            return self.capture_config.device_index
        return self.capture_config.preferred_devices or None

    def list_devices(self) -> List[DeviceInfo]:
        """List input-capable devices."""
        pyaudio_instance = pyaudio.PyAudio()
        try:
            return list_input_devices(pyaudio_instance)
        finally:
            pyaudio_instance.terminate()

    def check_microphone_available(self) -> bool:
        """Check if at least one microphone is available for recording."""
        try:
            return bool(self.list_devices())
        except OSError as e:
            logger.debug(f"Microphone not available: {e}")
            return False

    def create_controller(self) -> RecordingController:
        """Open the device and prepare a controller for one recording.

        Raises:
            DeviceUnavailable, FormatNotSupported, DeviceBusy: see AudioCaptureSession.open
        """
        config = self.capture_config
        capture = AudioCaptureSession.open(
            device_selector=self.device_selector(),
            sample_rate=config.sample_rate,
            channels=config.channels,
            buffer_window_ms=config.buffer_window_ms,
            queue_size=config.queue_size,
        )
        try:
            sink = StreamSink(new_recording_path(config.output_directory),
                              sample_rate=config.sample_rate,
                              channels=config.channels)
        except OSError:
            capture.stop()
            raise
        logger.info(f"[rec] device={capture.device.index} sr={config.sample_rate} "
                    f"ch={config.channels} buf={config.buffer_window_ms}ms")
        return RecordingController(capture, sink, config, publisher=self.publisher)

    def record(self, wait_for_start: bool = False):
        """Open the device and record one utterance. See RecordingController.record."""
        return self.create_controller().record(wait_for_start=wait_for_start)
