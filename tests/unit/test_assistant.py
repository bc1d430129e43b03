"""Unit tests for the voice assistant turn logic."""

import io
import os
import time

import pytest
from rich.console import Console

from speak2me.assistant import DIDNT_CATCH_REPLY, VoiceAssistant
from speak2me.audio.sink import StreamSink, new_recording_path
from speak2me.exceptions import CaptureIOFailure, TranscriptionError
from speak2me.models.transcription import TranscriptionResult
from speak2me.recording.controller import RecordingController
from speak2me.services.reply_service import AbstractReplyService
from speak2me.services.transcription_service import AbstractTranscriptionService
from speak2me.ui.assistant_screen import AssistantScreen
from speak2me.ui.keyboard_input import SPACE
from tests.conftest import ScriptedCapture


class ScriptedRecordingService:
    """Builds controllers whose capture replays script_for(controller)."""

    def __init__(self, capture_config, script_for):
        self.capture_config = capture_config
        self.script_for = script_for
        self.controllers = []

    def create_controller(self):
        config = self.capture_config
        capture = ScriptedCapture()
        sink = StreamSink(new_recording_path(config.output_directory), config.sample_rate, config.channels)
        controller = RecordingController(capture, sink, config)
        capture.script.extend(self.script_for(controller))
        self.controllers.append(controller)
        return controller


class FakeTranscriptionService(AbstractTranscriptionService):
    def __init__(self, text="", error=None):
        super().__init__()
        self.text = text
        self.error = error
        self.paths = []

    def transcribe(self, artifact_path):
        self.paths.append(artifact_path)
        assert os.path.exists(artifact_path)
        if self.error:
            raise self.error
        return TranscriptionResult(text=self.text, confidence=0.9, processing_time=0.01,
                                   timestamp=None, service="fake", audio_path=artifact_path)


class EchoReplyService(AbstractReplyService):
    def __init__(self):
        self.questions = []

    async def reply_async(self, text):
        self.questions.append(text)
        return f"You said: {text}"


def idle_keys(timeout):
    time.sleep(timeout)
    return None


@pytest.fixture
def screen_output():
    return io.StringIO()


@pytest.fixture
def make_assistant(capture_config, screen_output):
    def factory(script_for, transcription=None, reply=None, key_reader=idle_keys):
        screen = AssistantScreen(console=Console(file=screen_output, width=120, color_system=None))
        return VoiceAssistant(
            ScriptedRecordingService(capture_config, script_for),
            transcription or FakeTranscriptionService(text="what time is it"),
            reply or EchoReplyService(),
            screen,
            key_reader=key_reader,
        )

    return factory


@pytest.mark.unit
class TestVoiceAssistant:
    """Test cases for VoiceAssistant turns."""

    def test_completed_turn_replies_and_deletes_recording(self, make_assistant, frames,
                                                          screen_output, temp_data_dir):
        reply = EchoReplyService()
        assistant = make_assistant(lambda c: frames.voiced(20) + frames.silent(16), reply=reply)

        assert assistant.run_turn() is True

        assert reply.questions == ["what time is it"]
        assert "You said: what time is it" in screen_output.getvalue()
        assert os.listdir(temp_data_dir) == []

    def test_blank_transcript_gets_didnt_catch_reply(self, make_assistant, frames,
                                                     screen_output, temp_data_dir):
        reply = EchoReplyService()
        assistant = make_assistant(lambda c: frames.voiced(20) + frames.silent(16),
                                   transcription=FakeTranscriptionService(text="[BLANK_AUDIO]"),
                                   reply=reply)

        assert assistant.run_turn() is True

        assert reply.questions == []
        assert DIDNT_CATCH_REPLY in screen_output.getvalue()
        assert os.listdir(temp_data_dir) == []

    def test_rejected_recording_shows_message(self, make_assistant, screen_output):
        transcription = FakeTranscriptionService()
        assistant = make_assistant(lambda c: [c.request_stop], transcription=transcription)

        assert assistant.run_turn() is True

        assert transcription.paths == []
        assert "Recording too short" in screen_output.getvalue()

    def test_cancel_ends_the_loop(self, make_assistant, frames, temp_data_dir):
        transcription = FakeTranscriptionService()
        assistant = make_assistant(lambda c: frames.voiced(5) + [c.cancel], transcription=transcription)

        assert assistant.run_turn() is False

        assert transcription.paths == []
        assert os.listdir(temp_data_dir) == []

    def test_transcription_failure_is_reported(self, make_assistant, frames,
                                               screen_output, temp_data_dir):
        assistant = make_assistant(
            lambda c: frames.voiced(20) + frames.silent(16),
            transcription=FakeTranscriptionService(error=TranscriptionError("quota exceeded")))

        assert assistant.run_turn() is True

        assert "quota exceeded" in screen_output.getvalue()
        assert os.listdir(temp_data_dir) == []

    def test_capture_failure_is_reported(self, make_assistant, frames, screen_output, temp_data_dir):
        assistant = make_assistant(lambda c: frames.voiced(3) + [CaptureIOFailure("unplugged")])

        assert assistant.run_turn() is True

        assert "Recording failed" in screen_output.getvalue()
        assert os.listdir(temp_data_dir) == []

    def test_run_once(self, make_assistant, frames, screen_output):
        keys = iter([SPACE])

        def key_reader(timeout):
            key = next(keys, None)
            if key is None:
                time.sleep(timeout)
            return key

        assistant = make_assistant(lambda c: frames.voiced(20) + frames.silent(16), key_reader=key_reader)
        assistant.run(once=True)

        assert assistant.turns == 1
        assert "Goodbye." in screen_output.getvalue()
