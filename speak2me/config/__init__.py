"""YAML configuration loader for speak2me."""

import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, Tuple
import logging

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "speak2me.yaml"


def find_config_file(start_dir: Optional[str] = None) -> Path:
    """Look for speak2me.yaml in start_dir and its parents."""
    current = Path(start_dir or os.getcwd()).absolute()
    for directory in [current, *current.parents]:
        candidate = directory / DEFAULT_CONFIG_NAME
        if candidate.exists():
            return candidate
    raise FileNotFoundError(f"Configuration file not found: {DEFAULT_CONFIG_NAME} "
                            f"(searched from {current})")


class Speak2MeConfig:
    """speak2me configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, looks for speak2me.yaml
                        in current directory and parent directories.
        """
        self.config_file = Path(config_path) if config_path else find_config_file()

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        if not config:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (('storage', 'output_directory'),
                             ('logging', 'file_path'),
                             ('transcription', 'credentials_path')):
            section_config = config.get(section)
            if not isinstance(section_config, dict):
                continue
            value = section_config.get(key)
            if value and not os.path.isabs(value):
                section_config[key] = str(config_dir / value)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'vad.silence_hang_ms').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'audio.device_index')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_output_directory(self) -> str:
        """Get the directory where recordings are written."""
        output_dir = self.get('storage.output_directory', 'recordings')
        return str(Path(output_dir).absolute())

    def get_google_credentials_path(self) -> str:
        """Get Google credentials path - CRASHES if not found."""
        creds_path = self.get('transcription.credentials_path')
        if not creds_path:
            raise ConfigurationError("Google credentials path not configured in speak2me.yaml")

        creds_file = Path(creds_path)
        if not creds_file.exists():
            raise FileNotFoundError(f"Google credentials file not found: {creds_path}")

        return str(creds_file.absolute())


@dataclass(frozen=True)
class CaptureConfig:
    """Validated tunables for one recording session.

    Every value is supplied by the caller; the controller and detector read
    nothing from the environment.
    """
    sample_rate: int
    channels: int
    buffer_window_ms: int
    min_speech_ms: int
    silence_hang_ms: int
    max_duration_ms: int
    energy_threshold: float
    start_threshold_ratio: float
    min_artifact_bytes: int = 1024
    device_index: Optional[int] = None
    preferred_devices: Tuple[str, ...] = field(default_factory=tuple)
    queue_size: int = 64
    output_directory: Optional[str] = None

    def __post_init__(self):
        for name in ("sample_rate", "channels", "buffer_window_ms",
                     "max_duration_ms", "queue_size"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive, got {getattr(self, name)}")
        for name in ("min_speech_ms", "silence_hang_ms", "min_artifact_bytes"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must not be negative, got {getattr(self, name)}")
        if not 0.0 < self.energy_threshold <= 1.0:
            raise ConfigurationError(
                f"energy_threshold must be in (0, 1], got {self.energy_threshold}")
        if not 0.0 < self.start_threshold_ratio <= 1.0:
            raise ConfigurationError(
                f"start_threshold_ratio must be in (0, 1], got {self.start_threshold_ratio}")
        if self.max_duration_ms < self.buffer_window_ms:
            raise ConfigurationError("max_duration_ms must be at least one buffer window")

    @property
    def start_threshold(self) -> float:
        return self.energy_threshold * self.start_threshold_ratio

    @classmethod
    def from_config(cls, config: Speak2MeConfig) -> "CaptureConfig":
        """Build the capture tunables from the 'audio', 'vad' and 'storage' sections."""
        try:
            device_index = config.get('audio.device_index')
            return cls(
                sample_rate=int(config.get('audio.sample_rate', 16000)),
                channels=int(config.get('audio.channels', 1)),
                buffer_window_ms=int(config.get('audio.buffer_window_ms', 50)),
                min_speech_ms=int(config.get('vad.min_speech_ms', 200)),
                silence_hang_ms=int(config.get('vad.silence_hang_ms', 800)),
                max_duration_ms=int(config.get('vad.max_duration_ms', 8000)),
                energy_threshold=float(config.get('vad.energy_threshold', 0.006)),
                start_threshold_ratio=float(config.get('vad.start_threshold_ratio', 0.8)),
                min_artifact_bytes=int(config.get('vad.min_artifact_bytes', 1024)),
                device_index=int(device_index) if device_index is not None else None,
                preferred_devices=tuple(config.get('audio.preferred_devices', []) or []),
                queue_size=int(config.get('audio.queue_size', 64)),
                output_directory=config.get_output_directory(),
            )
        except (TypeError, ValueError) as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid capture configuration: {e}") from e


__all__ = ["Speak2MeConfig", "CaptureConfig", "find_config_file", "DEFAULT_CONFIG_NAME"]
