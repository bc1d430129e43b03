"""Exceptions raised by the capture subsystem and its collaborators."""


class Speak2MeError(Exception):
    """Base class for all speak2me errors."""


class ConfigurationError(Speak2MeError, ValueError):
    """Raised when configuration is missing or fails validation."""


class DeviceUnavailable(Speak2MeError):
    """Raised when no audio input device is present."""


class FormatNotSupported(Speak2MeError):
    """Raised when the selected device cannot honour the requested rate/channels."""


class DeviceBusy(Speak2MeError):
    """Raised when another capture session already holds the input device."""


class CaptureIOFailure(Speak2MeError):
    """Raised when the input stream fails mid-recording. Safe to retry."""


class TranscriptionError(Speak2MeError):
    """Raised when the transcription service fails."""


class ReplyServiceError(Speak2MeError):
    """Raised when a reply service responds with an error or invalid payload."""
