"""Audio capture and device listing."""

from .device_manager import AudioDevice, list_input_devices, get_device_info, get_default_input_device
from .backend import AudioBackend, InputStream, SoundDeviceBackend
from .capture import CaptureDevice, SessionState
from .errors import (
    CaptureError,
    BackendInitError,
    SinkOpenError,
    StreamOpenError,
    StreamStartError,
    StreamReadError,
    SinkCloseError,
    CaptureStateError,
)

__all__ = [
    "AudioDevice",
    "list_input_devices",
    "get_device_info",
    "get_default_input_device",
    "AudioBackend",
    "InputStream",
    "SoundDeviceBackend",
    "CaptureDevice",
    "SessionState",
    "CaptureError",
    "BackendInitError",
    "SinkOpenError",
    "StreamOpenError",
    "StreamStartError",
    "StreamReadError",
    "SinkCloseError",
    "CaptureStateError",
]
