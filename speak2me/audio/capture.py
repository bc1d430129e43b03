"""Audio capture session delivering fixed-duration frames through a bounded queue."""

import pyaudio
import queue
import time
import logging
from threading import Thread, Event, Lock
from typing import Optional
from datetime import datetime

from .devices import DeviceSelector, list_input_devices, select_device
from ..exceptions import CaptureIOFailure, DeviceBusy, DeviceUnavailable, FormatNotSupported
from ..models.audio import AudioFrame, AudioStats, DeviceInfo


logger = logging.getLogger(__name__)


def _chunk_size(sample_rate: int, buffer_window_ms: int) -> int:
    """Samples per channel in one buffer window."""
    return max(1, sample_rate * buffer_window_ms // 1000)


class AudioCaptureSession:
    """One exclusive hold on an input device, producing AudioFrames on a background thread.

    Use AudioCaptureSession.open() to negotiate the device and format. Frames
    are pushed into a bounded queue and consumed with read_frame().
    """

    # Only one session may hold the input device at a time
    _device_lock = Lock()

    def __init__(
        self,
        pyaudio_instance: pyaudio.PyAudio,
        stream,
        device: DeviceInfo,
        sample_rate: int,
        channels: int,
        buffer_window_ms: int,
        queue_size: int = 64,
    ):
        """Wrap an already-opened (not yet started) input stream.

        Args:
            pyaudio_instance: PyAudio instance owning the stream
            stream: Input stream opened with start=False
            device: Device the stream reads from
            sample_rate: Audio sample rate
            channels: Number of audio channels
            buffer_window_ms: Duration of each delivered frame
            queue_size: Maximum number of undelivered frames
        """
        self.pyaudio_instance = pyaudio_instance
        self.stream = stream
        self.device = device
        self.sample_rate = sample_rate
        self.channels = channels
        self.buffer_window_ms = buffer_window_ms
        self.chunk_size = _chunk_size(sample_rate, buffer_window_ms)
        self.frames: "queue.Queue[AudioFrame]" = queue.Queue(maxsize=queue_size)

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False
        self.error: Optional[CaptureIOFailure] = None
        self._state_lock = Lock()
        self._started = False
        self._stopped = False
        self._quiesced = Event()

        # Statistics tracking
        self.start_time: Optional[datetime] = None
        self.chunks_read = 0
        self.total_chunks = 0
        self.dropped_chunks = 0

    @classmethod
    def open(
        cls,
        device_selector: DeviceSelector = None,
        sample_rate: int = 16000,
        channels: int = 1,
        buffer_window_ms: int = 50,
        queue_size: int = 64,
    ) -> "AudioCaptureSession":
        """Select a device and negotiate the capture format.

        Raises:
            DeviceBusy: another session holds the device
            DeviceUnavailable: no input devices are present
            FormatNotSupported: the device cannot honour rate/channels
        """
        if not cls._device_lock.acquire(blocking=False):
            raise DeviceBusy("Another capture session is already using the input device")

        pyaudio_instance = None
        try:
            pyaudio_instance = pyaudio.PyAudio()
            devices = list_input_devices(pyaudio_instance)
            if not devices:
                raise DeviceUnavailable("No input devices found.")

            device = select_device(devices, device_selector)
            chunk_size = _chunk_size(sample_rate, buffer_window_ms)
            try:
                pyaudio_instance.is_format_supported(
                    sample_rate,
                    input_device=device.index,
                    input_channels=channels,
                    input_format=pyaudio.paInt16,
                )
            except ValueError as e:
                raise FormatNotSupported(
                    f"Device [{device.index}] {device.name} does not support "
                    f"{sample_rate}Hz/{channels}ch 16-bit: {e}") from e

            try:
                stream = pyaudio_instance.open(
                    format=pyaudio.paInt16,
                    channels=channels,
                    rate=sample_rate,
                    input=True,
                    input_device_index=device.index,
                    frames_per_buffer=chunk_size,
                    start=False,
                )
            except OSError as e:
                raise FormatNotSupported(f"Could not open device [{device.index}] {device.name}: {e}") from e
        except Exception:
            if pyaudio_instance is not None:
                pyaudio_instance.terminate()
            cls._device_lock.release()
            raise

        logger.info(f"Audio stream opened on [{device.index}] {device.name}: "
                    f"{sample_rate}Hz, {channels}ch, {chunk_size} samples/chunk")
        return cls(pyaudio_instance, stream, device, sample_rate, channels,
                   buffer_window_ms, queue_size)

    def start(self) -> None:
        """Start frame delivery in a background thread. May only be called once."""
        with self._state_lock:
            if self._started:
                raise RuntimeError("Capture session can only be started once")
            if self._stopped:
                raise RuntimeError("Capture session is already stopped")
            self._started = True

        logger.info("Starting audio capture")
        self.start_time = datetime.now()
        try:
            self.stream.start_stream()
        except OSError as e:
            logger.error(f"Audio input failed to start: {e}")
            raise CaptureIOFailure(f"Audio input failed to start: {e}") from e

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = "AudioCaptureThread"
        self.recording_thread.start()
        self.is_recording = True

    def stop(self) -> None:
        """Stop capturing and release the device.

        Safe to call repeatedly and from several threads; the device is
        stopped once and every caller returns after capture has quiesced.
        """
        with self._state_lock:
            first_caller = not self._stopped
            self._stopped = True

        if not first_caller:
            self._quiesced.wait(timeout=self._join_timeout())
            return

        logger.info("Stopping audio capture")
        self.stop_event.set()
        try:
            # Wait for recording thread to finish
            if self.recording_thread and self.recording_thread.is_alive():
                self.recording_thread.join(timeout=self._join_timeout())
                if self.recording_thread.is_alive():
                    logger.warning("Recording thread did not stop cleanly")
            self._close_stream()
        finally:
            self.is_recording = False
            self._quiesced.set()
            self._device_lock.release()
        logger.info(f"Audio capture stopped. Total chunks: {self.total_chunks}, "
                    f"dropped: {self.dropped_chunks}")

    def read_frame(self, timeout: Optional[float] = None) -> Optional[AudioFrame]:
        """Return the next captured frame, or None if none arrived within timeout.

        Raises:
            CaptureIOFailure: the stream failed and every frame captured
                before the failure has been consumed
        """
        try:
            return self.frames.get(timeout=timeout)
        except queue.Empty:
            if self.error is not None:
                raise self.error
            return None

    def _join_timeout(self) -> float:
        return max(2.0, 4 * self.buffer_window_ms / 1000.0)

    def _close_stream(self) -> None:
        try:
            if self.stream is not None:
                self.stream.stop_stream()
                self.stream.close()
        finally:
            self.stream = None
            if self.pyaudio_instance is not None:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None

    def _read_audio_chunk(self) -> bytes:
        return self.stream.read(self.chunk_size, exception_on_overflow=False)

    def _publish_frame(self, audio_chunk: bytes) -> None:
        frame = AudioFrame(
            data=audio_chunk,
            sequence_number=self.chunks_read,
            sample_rate=self.sample_rate,
            channels=self.channels,
            timestamp=time.time(),
        )
        # Dropped frames keep their number so gaps stay visible downstream
        self.chunks_read += 1
        try:
            # Never hold up the device for longer than one frame period
            self.frames.put(frame, timeout=self.buffer_window_ms / 1000.0)
            self.total_chunks += 1
        except queue.Full:
            self.dropped_chunks += 1
            logger.warning(f"Frame queue full, dropped frame {frame.sequence_number}")

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        try:
            while not self.stop_event.is_set():
                audio_chunk = self._read_audio_chunk()
                self._publish_frame(audio_chunk)
        except OSError as e:
            if not self.stop_event.is_set():
                logger.error(f"Audio input failed mid-stream: {e}")
                self.error = CaptureIOFailure(f"Audio input failed: {e}")

    def get_recording_stats(self) -> AudioStats:
        """Get current recording statistics."""
        duration = 0.0
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()

        return AudioStats(
            is_recording=self.is_recording,
            duration_seconds=duration,
            sample_rate=self.sample_rate,
            chunk_size=self.chunk_size,
            total_chunks=self.total_chunks,
            dropped_chunks=self.dropped_chunks,
        )

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.stop()
