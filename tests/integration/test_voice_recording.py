"""Integration tests for voice-activated recording with mocked audio hardware."""

import os
import threading
import time
import wave

import pytest
from pubsub import pub

from speak2me.exceptions import CaptureIOFailure
from speak2me.models.session import Cancelled, Completed, Rejected, RejectReason, StopReason
from speak2me.recording.publisher import LEVEL_TOPIC, STATE_TOPIC
from speak2me.services.recording_service import RecordingService


@pytest.fixture
def speech_then_silence(mock_pyaudio, audio_test_data):
    """Make the mocked microphone deliver 1s of tone followed by silence."""
    reads = {'count': 0}

    def read(num_frames, exception_on_overflow=True):
        time.sleep(0.001)
        reads['count'] += 1
        pattern = "sine" if reads['count'] <= 20 else "silence"
        return audio_test_data(pattern, num_frames)

    mock_pyaudio['stream'].read.side_effect = read
    return mock_pyaudio


@pytest.mark.integration
class TestVoiceRecording:
    """End-to-end recording through RecordingService."""

    def test_records_until_silence(self, speech_then_silence, capture_config):
        service = RecordingService(capture_config)
        states = []

        def on_state(event):
            states.append(event.state.value)

        pub.subscribe(on_state, STATE_TOPIC)
        try:
            outcome = service.record()
        finally:
            pub.unsubscribe(on_state, STATE_TOPIC)

        assert isinstance(outcome, Completed)
        assert outcome.stop_reason is StopReason.SILENCE_TIMEOUT
        assert outcome.duration_ms == pytest.approx(1800.0)
        assert states == ["waiting_for_trigger", "recording", "finalizing", "completed"]

        with wave.open(outcome.artifact_path, 'rb') as wf:
            assert wf.getframerate() == 16000
            assert wf.getnchannels() == 1
            assert wf.getsampwidth() == 2
            assert wf.getnframes() * 2 == outcome.artifact.data_bytes

        speech_then_silence['stream'].stop_stream.assert_called_once()
        speech_then_silence['instance'].terminate.assert_called_once()

    def test_silence_only_is_rejected(self, mock_pyaudio, make_capture_config, temp_data_dir):
        service = RecordingService(make_capture_config(max_duration_ms=1000))

        outcome = service.record()

        assert isinstance(outcome, Rejected)
        assert outcome.reason is RejectReason.SILENCE_ONLY
        assert os.listdir(temp_data_dir) == []

    def test_cancel_from_another_thread(self, mock_pyaudio, capture_config, temp_data_dir):
        service = RecordingService(capture_config)
        controller = service.create_controller()
        levels = []

        def on_level(event):
            levels.append(event)
            if len(levels) == 5:
                threading.Thread(target=controller.cancel).start()

        pub.subscribe(on_level, LEVEL_TOPIC)
        try:
            outcome = controller.record()
        finally:
            pub.unsubscribe(on_level, LEVEL_TOPIC)

        assert isinstance(outcome, Cancelled)
        assert os.listdir(temp_data_dir) == []

    def test_stream_start_failure(self, mock_pyaudio, capture_config, temp_data_dir):
        """A device that fails to start reports CaptureIOFailure and frees the device."""
        mock_pyaudio['stream'].start_stream.side_effect = OSError(-9999, "Unanticipated host error")
        service = RecordingService(capture_config)

        with pytest.raises(CaptureIOFailure):
            service.record()

        assert os.listdir(temp_data_dir) == []
        mock_pyaudio['instance'].terminate.assert_called_once()

    def test_sessions_run_back_to_back(self, speech_then_silence, make_capture_config):
        """The device is released after each recording."""
        service = RecordingService(make_capture_config(max_duration_ms=500))
        first = service.record()
        second = service.record()
        assert first.stop_reason is StopReason.HARD_CAP
        assert second.stop_reason is StopReason.HARD_CAP

    def test_list_devices(self, mock_pyaudio, capture_config):
        service = RecordingService(capture_config)
        assert [d.name for d in service.list_devices()] == ['Built-in Microphone', 'AirPods Pro']
        assert service.check_microphone_available() is True

    def test_preferred_device_from_config(self, mock_pyaudio, make_capture_config):
        service = RecordingService(make_capture_config(preferred_devices=("AirPods",)))
        controller = service.create_controller()
        try:
            assert controller.session.device.index == 2
        finally:
            controller.cancel()
            controller.record()
