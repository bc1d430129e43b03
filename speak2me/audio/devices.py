"""Input device enumeration and selection."""

import logging
from typing import Iterable, List, Optional, Sequence, Union

import pyaudio

from ..models.audio import DeviceInfo

logger = logging.getLogger(__name__)

DeviceSelector = Union[int, str, Sequence[str], None]


def list_input_devices(pyaudio_instance: pyaudio.PyAudio) -> List[DeviceInfo]:
    """Return every device that can record at least one channel."""
    devices = []
    for index in range(pyaudio_instance.get_device_count()):
        info = pyaudio_instance.get_device_info_by_index(index)
        channels = int(info.get('maxInputChannels', 0))
        if channels <= 0:
            continue
        devices.append(DeviceInfo(
            index=index,
            name=str(info.get('name', f"device {index}")),
            max_input_channels=channels,
            default_sample_rate=float(info.get('defaultSampleRate', 0.0)),
        ))
    return devices


def _match_name(devices: Iterable[DeviceInfo], needle: str) -> Optional[DeviceInfo]:
    needle = needle.lower()
    for device in devices:
        if needle in device.name.lower():
            return device
    return None


def select_device(devices: Sequence[DeviceInfo], selector: DeviceSelector = None) -> DeviceInfo:
    """Pick a device by index, name substring or list of preferred names.

    Falls back to the first listed device when nothing matches. The caller
    guarantees that devices is not empty.
    """
    if isinstance(selector, int):
        for device in devices:
            if device.index == selector:
                return device
        logger.warning(f"Input device index {selector} not available, using default")
    elif isinstance(selector, str):
        match = _match_name(devices, selector)
        if match:
            return match
        logger.info(f"No input device matches '{selector}', using default")
    elif selector:
        for name in selector:
            match = _match_name(devices, name)
            if match:
                logger.info(f"Preferred input device found: [{match.index}] {match.name}")
                return match
    return devices[0]
