"""Audio-related data models."""

from dataclasses import dataclass


BYTES_PER_SAMPLE = 2  # 16-bit signed little-endian PCM


@dataclass(frozen=True)
class AudioFrame:
    """A fixed-duration chunk of PCM samples from one capture session."""
    data: bytes
    sequence_number: int
    sample_rate: int
    channels: int
    timestamp: float  # Time when this frame was captured

    @property
    def sample_count(self) -> int:
        """Number of samples per channel in this frame."""
        return len(self.data) // (BYTES_PER_SAMPLE * self.channels)

    @property
    def duration_ms(self) -> float:
        return self.sample_count * 1000.0 / self.sample_rate


@dataclass
class AudioStats:
    """Audio capture statistics."""
    is_recording: bool
    duration_seconds: float
    sample_rate: int
    chunk_size: int
    total_chunks: int
    dropped_chunks: int


@dataclass(frozen=True)
class DeviceInfo:
    """An input-capable audio device."""
    index: int
    name: str
    max_input_channels: int
    default_sample_rate: float


@dataclass(frozen=True)
class CapturedArtifact:
    """A finalized WAV file produced by a recording session."""
    path: str
    duration_ms: float
    byte_size: int      # Size of the whole file, header included
    data_bytes: int     # Declared length of the data chunk
    frame_count: int    # Number of AudioFrames appended
    sample_rate: int
    channels: int
