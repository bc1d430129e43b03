"""Frame energy measurement for voice-activity detection."""

from dataclasses import dataclass

import numpy as np

from ..models.audio import AudioFrame

FULL_SCALE = 32768.0  # int16 full-scale amplitude


@dataclass(frozen=True)
class FrameClassification:
    """Energy measurements and the voiced/unvoiced decision for one frame."""
    energy: float
    peak: float
    rms: float
    voiced: bool


def measure(data: bytes):
    """Return (peak, rms) of 16-bit PCM data, both normalized to [0, 1]."""
    samples = np.frombuffer(data, dtype='<i2', count=len(data) // 2)
    if samples.size == 0:
        return 0.0, 0.0
    as_float = samples.astype(np.float64)
    peak = float(np.max(np.abs(as_float))) / FULL_SCALE
    rms = float(np.sqrt(np.mean(as_float * as_float))) / FULL_SCALE
    return min(peak, 1.0), min(rms, 1.0)


def frame_energy(data: bytes) -> float:
    """max(peak, rms) of 16-bit PCM data. Zero samples gives 0.0."""
    peak, rms = measure(data)
    return max(peak, rms)


class EnergyDetector:
    """Stateless peak/RMS energy classifier.

    Two thresholds are kept apart: the sustain threshold judges whether a
    frame is voiced once speech is under way, and the (usually lower) start
    threshold judges speech onset.
    """

    def __init__(self, threshold: float, start_threshold: float):
        """Initialize the detector.

        Args:
            threshold: Normalized energy at or above which a frame is voiced
            start_threshold: Normalized energy at or above which speech is
                considered to have started
        """
        self.threshold = threshold
        self.start_threshold = start_threshold

    @classmethod
    def from_capture_config(cls, capture_config) -> "EnergyDetector":
        return cls(threshold=capture_config.energy_threshold,
                   start_threshold=capture_config.start_threshold)

    def energy(self, frame: AudioFrame) -> float:
        return frame_energy(frame.data)

    def is_voiced(self, energy: float) -> bool:
        return energy >= self.threshold

    def is_onset(self, energy: float) -> bool:
        return energy >= self.start_threshold

    def classify(self, frame: AudioFrame, started_speech: bool) -> FrameClassification:
        """Classify a frame; onset threshold applies until speech has started."""
        peak, rms = measure(frame.data)
        energy = max(peak, rms)
        voiced = self.is_voiced(energy) if started_speech else self.is_onset(energy)
        return FrameClassification(energy=energy, peak=peak, rms=rms, voiced=voiced)
