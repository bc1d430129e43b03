"""Terminal UI: keyboard control events and console output."""

from .assistant_screen import AssistantScreen, LevelMeter
from .keyboard_input import KeyboardInputHandler, recording_key_handler, wait_for_key

__all__ = [
    "AssistantScreen",
    "LevelMeter",
    "KeyboardInputHandler",
    "recording_key_handler",
    "wait_for_key",
]
