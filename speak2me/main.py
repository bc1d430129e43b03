"""Main application entry point for speak2me."""

import sys
import argparse
import logging
from pathlib import Path

from . import __version__
from .assistant import VoiceAssistant
from .audio.devices import select_device
from .config import CaptureConfig, Speak2MeConfig
from .exceptions import Speak2MeError
from .services.recording_service import RecordingService
from .services.reply_service import ChatApiReplyService, FallbackReplyService, LlmReplyService
from .services.transcription_service import GoogleSpeechTranscriptionService
from .ui.assistant_screen import AssistantScreen

logger = logging.getLogger(__name__)


def setup_logging(config: Speak2MeConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'logs/speak2me.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - only if enabled in config
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("speak2me starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def build_reply_service(config: Speak2MeConfig):
    """Chat API first, local LLM as fallback; either may be left unconfigured."""
    api_base = config.get('reply.api_base')
    llm = None
    if config.get('reply.llm.base_url'):
        llm = LlmReplyService(
            base_url=config.get('reply.llm.base_url'),
            api_key=config.get('reply.llm.api_key'),
            model=config.get('reply.llm.model', 'gpt-4o-mini'),
            timeout=float(config.get('reply.llm.timeout_seconds', 60.0)),
        )
    if api_base:
        chat = ChatApiReplyService(api_base, timeout=float(config.get('reply.timeout_seconds', 30.0)))
        return FallbackReplyService(chat, llm) if llm else chat
    if llm:
        return llm
    raise Speak2MeError("No reply service configured: set reply.api_base or reply.llm.base_url")


def build_assistant(config: Speak2MeConfig, screen: AssistantScreen) -> VoiceAssistant:
    capture_config = CaptureConfig.from_config(config)
    recording_service = RecordingService(capture_config)

    devices = recording_service.list_devices()
    if devices:
        screen.show_devices(devices, select_device(devices, recording_service.device_selector()))

    transcription_service = GoogleSpeechTranscriptionService(
        credentials_path=config.get_google_credentials_path(),
        language=config.get('transcription.language', 'en-US'),
        use_enhanced=config.get('transcription.use_enhanced_model', True),
        enable_automatic_punctuation=config.get('transcription.enable_automatic_punctuation', True),
    )
    transcription_service.initialize()

    return VoiceAssistant(recording_service, transcription_service,
                          build_reply_service(config), screen)


def main() -> None:
    """Main entry point for speak2me."""
    parser = argparse.ArgumentParser(
        description="speak2me - voice-activated assistant",
        epilog="Keys: SPACE=start/stop recording, ESC=cancel and quit"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for speak2me.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config, else INFO)"
    )

    parser.add_argument(
        "--list-devices",
        action="store_true",
        help="List input devices and exit"
    )

    parser.add_argument(
        "--device",
        type=str,
        help="Input device index or name substring (overrides config)"
    )

    parser.add_argument(
        "--debug-meters",
        action="store_true",
        help="Print input levels while recording"
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Exit after a single conversation turn"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"speak2me v{__version__}"
    )

    args = parser.parse_args()

    try:
        config = Speak2MeConfig(args.config)
    except (FileNotFoundError, Speak2MeError) as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

    if args.device is not None:
        if args.device.isdigit():
            config.set('audio.device_index', int(args.device))
        else:
            config.set('audio.device_index', None)
            config.set('audio.preferred_devices', [args.device])

    screen = AssistantScreen(debug_meters=args.debug_meters or config.get('ui.debug_meters', False))

    try:
        if args.list_devices:
            recording_service = RecordingService(CaptureConfig.from_config(config))
            screen.show_devices(recording_service.list_devices())
            return
        assistant = build_assistant(config, screen)
        assistant.run(once=args.once)
    except KeyboardInterrupt:
        screen.goodbye()
    except (Speak2MeError, FileNotFoundError) as e:
        print(f"❌ Error: {e}")
        logger.error(f"Application error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
