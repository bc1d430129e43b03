"""Push-to-start voice assistant loop: record, transcribe, reply."""

import logging
from pathlib import Path
from typing import Callable, Optional

from .exceptions import CaptureIOFailure, ReplyServiceError, TranscriptionError
from .models.session import Cancelled, Completed, Rejected, RecordingOutcome
from .services.recording_service import RecordingService
from .services.reply_service import AbstractReplyService
from .services.transcription_service import AbstractTranscriptionService
from .ui.assistant_screen import AssistantScreen
from .ui.keyboard_input import ESCAPE, SPACE, get_key, recording_key_handler, wait_for_key

logger = logging.getLogger(__name__)

DIDNT_CATCH_REPLY = "I didn't catch that. Try again a little louder or closer to the microphone."


class VoiceAssistant:
    """Runs conversation turns until the user quits."""

    def __init__(self,
                 recording_service: RecordingService,
                 transcription_service: AbstractTranscriptionService,
                 reply_service: AbstractReplyService,
                 screen: AssistantScreen,
                 key_reader: Callable[[float], Optional[str]] = get_key):
        self.recording_service = recording_service
        self.transcription_service = transcription_service
        self.reply_service = reply_service
        self.screen = screen
        self.key_reader = key_reader
        self.turns = 0

    def run(self, once: bool = False) -> None:
        """Loop: SPACE starts a turn, ESC quits. ESC during a recording also quits."""
        self.screen.show_banner()
        while True:
            self.screen.prompt_start()
            if wait_for_key((SPACE, ESCAPE), self.key_reader) == ESCAPE:
                break
            if not self.run_turn() or once:
                break
        self.screen.goodbye()

    def run_turn(self) -> bool:
        """Record one utterance and answer it.

        Returns:
            False when the user cancelled and the loop should end
        """
        self.turns += 1
        outcome = self.record()
        if outcome is None:
            return True
        if isinstance(outcome, Cancelled):
            logger.info("Recording cancelled by user")
            return False
        if isinstance(outcome, Rejected):
            logger.info(f"Recording rejected: {outcome.reason.value}")
            self.screen.show_message(outcome.message)
            return True

        try:
            self.respond(outcome)
        except (TranscriptionError, ReplyServiceError) as e:
            logger.error(f"Turn {self.turns} failed: {e}")
            self.screen.show_message(f"Something went wrong: {e}", style="red")
        return True

    def record(self) -> Optional[RecordingOutcome]:
        """Record with keyboard control; None when capture failed mid-stream."""
        controller = self.recording_service.create_controller()
        handler = recording_key_handler(controller, key_reader=self.key_reader)
        self.screen.recording_started()
        handler.start()
        try:
            return controller.record()
        except CaptureIOFailure as e:
            logger.error(f"Capture failed: {e}")
            self.screen.show_message(f"Recording failed: {e}. Please try again.", style="red")
            return None
        finally:
            handler.stop()
            self.screen.recording_finished()

    def respond(self, outcome: Completed) -> str:
        """Transcribe the recording, ask the reply service and show both."""
        self.screen.processing()
        try:
            result = self.transcription_service.transcribe(outcome.artifact_path)
        finally:
            Path(outcome.artifact_path).unlink(missing_ok=True)

        text = "" if result.is_blank else result.text.strip()
        self.screen.show_transcript(text)

        if not text:
            reply = DIDNT_CATCH_REPLY
        else:
            reply = self.reply_service.reply(text)
        self.screen.show_reply(reply)
        return reply
