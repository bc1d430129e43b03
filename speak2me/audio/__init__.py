"""Audio capture, analysis and persistence."""

from .capture import AudioCaptureSession
from .devices import list_input_devices, select_device
from .energy import EnergyDetector, FrameClassification, frame_energy
from .sink import StreamSink, new_recording_path

__all__ = [
    'AudioCaptureSession',
    'EnergyDetector',
    'FrameClassification',
    'StreamSink',
    'frame_energy',
    'list_input_devices',
    'new_recording_path',
    'select_device',
]
