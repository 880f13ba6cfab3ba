"""Audio input device listing."""

from dataclasses import dataclass
from typing import List, Optional
import sounddevice as sd

from ..utils.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class AudioDevice:
    """Represents an audio input device."""
    id: int
    name: str
    channels: int
    default_sample_rate: float
    is_default: bool

    def __str__(self) -> str:
        return f"{self.name} ({self.channels}ch)"


def list_input_devices() -> List[AudioDevice]:
    """
    List all available audio input devices.

    Returns:
        List of AudioDevice objects for input devices.
    """
    devices = []
    default_input = sd.default.device[0]  # Default input device index

    for i, device in enumerate(sd.query_devices()):
        if device['max_input_channels'] > 0:
            devices.append(AudioDevice(
                id=i,
                name=device['name'],
                channels=device['max_input_channels'],
                default_sample_rate=device['default_samplerate'],
                is_default=(i == default_input)
            ))

    return devices


def get_device_info(device_id: int) -> Optional[AudioDevice]:
    """
    Get information for a specific input device.

    Args:
        device_id: The device index.

    Returns:
        AudioDevice if it exists and has inputs, None otherwise.
    """
    try:
        device = sd.query_devices(device_id)
    except (ValueError, sd.PortAudioError) as e:
        logger.debug(f"No device {device_id}: {e}")
        return None

    if device['max_input_channels'] <= 0:
        return None

    return AudioDevice(
        id=device_id,
        name=device['name'],
        channels=device['max_input_channels'],
        default_sample_rate=device['default_samplerate'],
        is_default=(device_id == sd.default.device[0])
    )


def get_default_input_device() -> Optional[AudioDevice]:
    """
    Get the system's default input device.

    Returns:
        AudioDevice for default input, None if not available.
    """
    default_id = sd.default.device[0]
    if default_id is None or default_id < 0:
        return None
    return get_device_info(default_id)


def format_devices(devices: List[AudioDevice]) -> str:
    """Render a device listing for the terminal."""
    lines = ["Available Audio Input Devices:", "-" * 50]

    for device in devices:
        default_marker = " [DEFAULT]" if device.is_default else ""
        lines.append(f"  [{device.id}] {device.name}{default_marker}")
        lines.append(
            f"       Channels: {device.channels}, Sample Rate: {device.default_sample_rate}Hz"
        )

    lines.append("-" * 50)
    return "\n".join(lines)
