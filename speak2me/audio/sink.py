"""Incremental WAV writer with single-shot finalization."""

import os
import tempfile
import uuid
import wave
import logging
import threading
from pathlib import Path
from typing import Optional

from ..models.audio import AudioFrame, BYTES_PER_SAMPLE, CapturedArtifact

logger = logging.getLogger(__name__)

PART_SUFFIX = ".part"


def new_recording_path(output_dir: Optional[str] = None, prefix: str = "va") -> str:
    """Return a fresh, unique .wav path in output_dir (system temp dir by default)."""
    directory = Path(output_dir) if output_dir else Path(tempfile.gettempdir())
    directory.mkdir(parents=True, exist_ok=True)
    return str(directory / f"{prefix}_{uuid.uuid4().hex}.wav")


class StreamSink:
    """Persists frames to a WAV file as they arrive.

    Samples go to ``<path>.part``; finalize() writes the header with the true
    sample count and renames the file onto ``path``. Until then callers never
    see a file at ``path``.
    """

    def __init__(self, path: str, sample_rate: int, channels: int):
        """Open the in-progress file.

        Args:
            path: Final location of the WAV file
            sample_rate: Audio sample rate
            channels: Number of audio channels
        """
        self.path = path
        self.part_path = path + PART_SUFFIX
        self.sample_rate = sample_rate
        self.channels = channels

        self._lock = threading.Lock()
        self._artifact: Optional[CapturedArtifact] = None
        self._abandoned = False
        self.frame_count = 0
        self.data_bytes = 0

        Path(self.part_path).parent.mkdir(parents=True, exist_ok=True)
        self._writer = wave.open(self.part_path, 'wb')
        self._writer.setnchannels(channels)
        self._writer.setsampwidth(BYTES_PER_SAMPLE)
        self._writer.setframerate(sample_rate)
        logger.debug(f"StreamSink opened: {self.part_path}")

    @property
    def is_open(self) -> bool:
        return self._writer is not None

    def append(self, frame: AudioFrame) -> None:
        """Write the frame's samples after everything appended so far."""
        with self._lock:
            if self._writer is None:
                raise RuntimeError("StreamSink is closed")
            # writeframesraw leaves the header alone until close()
            self._writer.writeframesraw(frame.data)
            self.frame_count += 1
            self.data_bytes += len(frame.data)

    def finalize(self) -> CapturedArtifact:
        """Close the file with a correct header and publish it at self.path.

        Must only run once the capture device has stopped delivering frames.
        Calling it again returns the same artifact.
        """
        with self._lock:
            if self._artifact is not None:
                return self._artifact
            if self._abandoned:
                raise RuntimeError("Cannot finalize an abandoned StreamSink")

            self._writer.close()
            self._writer = None
            os.replace(self.part_path, self.path)

            bytes_per_second = self.sample_rate * self.channels * BYTES_PER_SAMPLE
            self._artifact = CapturedArtifact(
                path=self.path,
                duration_ms=self.data_bytes * 1000.0 / bytes_per_second,
                byte_size=os.path.getsize(self.path),
                data_bytes=self.data_bytes,
                frame_count=self.frame_count,
                sample_rate=self.sample_rate,
                channels=self.channels,
            )
            logger.info(f"Recording finalized: {self.path} "
                        f"({self.data_bytes} data bytes, {self._artifact.duration_ms:.0f}ms)")
            return self._artifact

    def abandon(self) -> None:
        """Discard the in-progress file. No-op after finalize() or a previous abandon()."""
        with self._lock:
            if self._artifact is not None or self._abandoned:
                return
            self._abandoned = True
            try:
                if self._writer is not None:
                    self._writer.close()
            finally:
                self._writer = None
                Path(self.part_path).unlink(missing_ok=True)
            logger.debug(f"StreamSink abandoned: {self.part_path}")
