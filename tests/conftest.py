"""Pytest configuration and fixtures for speak2me tests."""

import pytest
import tempfile
import time
import logging
from collections import deque
from unittest.mock import Mock, patch
import numpy as np

from speak2me.audio.capture import AudioCaptureSession
from speak2me.config import CaptureConfig
from speak2me.models.audio import AudioFrame


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without audio hardware")
    config.addinivalue_line("markers", "integration: tests wiring several components together")
    config.addinivalue_line("markers", "hardware: tests that need a real microphone")


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture(autouse=True)
def release_device_lock():
    """Make sure a failed test never leaves the input device marked busy."""
    yield
    lock = AudioCaptureSession._device_lock
    if lock.locked():
        lock.release()


def generate_samples(pattern="sine", samples=800, amplitude=0.5):
    """Generate 16-bit mono PCM for testing.

    Args:
        pattern: Type of audio pattern ('sine', 'constant', 'silence')
        samples: Number of samples
        amplitude: Peak amplitude as a fraction of full scale

    Returns:
        bytes: Audio data as bytes
    """
    if pattern == "sine":
        t = np.arange(samples) / 16000.0
        wave_data = amplitude * np.sin(2 * np.pi * 440 * t)
    elif pattern == "constant":
        wave_data = np.full(samples, amplitude)
    elif pattern == "silence":
        wave_data = np.zeros(samples)
    else:
        raise ValueError(f"Unknown pattern: {pattern}")

    return (wave_data * 32767).astype('<i2').tobytes()


@pytest.fixture
def audio_test_data():
    """Generator of raw PCM bytes, see generate_samples()."""
    return generate_samples


class FrameFactory:
    """Builds numbered 50ms frames at 16kHz mono."""

    def __init__(self, sample_rate=16000, buffer_window_ms=50):
        self.sample_rate = sample_rate
        self.samples = sample_rate * buffer_window_ms // 1000
        self.sequence = 0

    def frame(self, pattern="sine", amplitude=0.5):
        frame = AudioFrame(
            data=generate_samples(pattern, self.samples, amplitude),
            sequence_number=self.sequence,
            sample_rate=self.sample_rate,
            channels=1,
            timestamp=time.time(),
        )
        self.sequence += 1
        return frame

    def voiced(self, count):
        return [self.frame("sine") for _ in range(count)]

    def silent(self, count):
        return [self.frame("silence") for _ in range(count)]


@pytest.fixture
def frames():
    return FrameFactory()


class ScriptedCapture:
    """Stand-in for AudioCaptureSession that replays a script on the reading thread.

    Script items are AudioFrames (returned by read_frame), callables (run
    inside read_frame before the next item, e.g. controller.cancel) and
    exceptions (raised from read_frame). An exhausted script behaves like
    a quiet device.
    """

    def __init__(self, script=()):
        self.script = deque(script)
        self.device = None
        self.start_calls = 0
        self.stop_calls = 0
        self.delivered = 0

    def start(self):
        if self.start_calls:
            raise RuntimeError("Capture session can only be started once")
        self.start_calls += 1

    def stop(self):
        self.stop_calls += 1

    def read_frame(self, timeout=None):
        while self.script:
            item = self.script.popleft()
            if isinstance(item, Exception):
                raise item
            if callable(item):
                item()
                continue
            self.delivered += 1
            return item
        time.sleep(timeout or 0)
        return None


@pytest.fixture
def scripted_capture():
    return ScriptedCapture()


@pytest.fixture
def make_capture_config(temp_data_dir):
    """Factory for CaptureConfig with test-friendly defaults."""
    def factory(**overrides):
        values = dict(
            sample_rate=16000,
            channels=1,
            buffer_window_ms=50,
            min_speech_ms=200,
            silence_hang_ms=800,
            max_duration_ms=8000,
            energy_threshold=0.006,
            start_threshold_ratio=0.8,
            min_artifact_bytes=1024,
            output_directory=temp_data_dir,
        )
        values.update(overrides)
        return CaptureConfig(**values)

    return factory


@pytest.fixture
def capture_config(make_capture_config):
    return make_capture_config()


DEFAULT_DEVICES = [
    {'name': 'HDMI Output', 'maxInputChannels': 0, 'defaultSampleRate': 48000.0},
    {'name': 'Built-in Microphone', 'maxInputChannels': 2, 'defaultSampleRate': 44100.0},
    {'name': 'AirPods Pro', 'maxInputChannels': 1, 'defaultSampleRate': 16000.0},
]


@pytest.fixture
def mock_pyaudio(audio_test_data):
    """Mock PyAudio for testing without actual audio hardware."""
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()
        devices = list(DEFAULT_DEVICES)

        def read(num_frames, exception_on_overflow=True):
            # Pace reads like a real device, only faster
            time.sleep(0.001)
            return audio_test_data("silence", num_frames)

        # Configure mock stream
        mock_stream.read.side_effect = read
        mock_stream.start_stream.return_value = None
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        # Configure mock PyAudio instance
        mock_pyaudio_instance.get_device_count.side_effect = lambda: len(devices)
        mock_pyaudio_instance.get_device_info_by_index.side_effect = lambda i: devices[i]
        mock_pyaudio_instance.is_format_supported.return_value = True
        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        # Configure mock PyAudio class
        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream,
            'devices': devices,
        }
