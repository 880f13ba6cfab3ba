"""Audio backend capability used by the capture loop."""

from typing import Protocol

import numpy as np
import sounddevice as sd


class InputStream(Protocol):
    """An opened input stream bound to a fixed buffer size."""

    def start(self) -> None: ...

    def read_into(self, buffer: np.ndarray) -> None:
        """Block until one buffer of frames is available and copy it into ``buffer``."""
        ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


class AudioBackend(Protocol):
    """Process-wide audio backend. ``initialize`` and ``terminate`` are paired."""

    def initialize(self) -> None: ...

    def terminate(self) -> None: ...

    def open_default_input_stream(
        self,
        channels: int,
        sample_rate: float,
        frames_per_buffer: int,
        dtype: str,
    ) -> InputStream: ...


class SoundDeviceInputStream:
    """Blocking-read wrapper around ``sd.InputStream``."""

    def __init__(self, stream: sd.InputStream, frames_per_buffer: int):
        self._stream = stream
        self._frames_per_buffer = frames_per_buffer

    def start(self) -> None:
        self._stream.start()

    def read_into(self, buffer: np.ndarray) -> None:
        """Blocking read of one buffer. Dropped input frames are an error."""
        data, overflowed = self._stream.read(self._frames_per_buffer)
        if overflowed:
            raise sd.PortAudioError("Input overflowed")
        np.copyto(buffer, data)

    def stop(self) -> None:
        self._stream.stop()

    def close(self) -> None:
        self._stream.close()


class SoundDeviceBackend:
    """
    PortAudio backend via sounddevice.

    sounddevice initializes PortAudio on import and reference-counts
    further ``_initialize``/``_terminate`` calls, so each session holds
    its own reference.
    """

    def initialize(self) -> None:
        # Private sounddevice API; each call adds one PortAudio reference
        sd._initialize()

    def terminate(self) -> None:
        # Drops the reference taken in initialize; PortAudio stays up while any remain
        sd._terminate()

    def open_default_input_stream(
        self,
        channels: int,
        sample_rate: float,
        frames_per_buffer: int,
        dtype: str,
    ) -> SoundDeviceInputStream:
        stream = sd.InputStream(
            device=None,
            channels=channels,
            samplerate=sample_rate,
            blocksize=frames_per_buffer,
            dtype=dtype,
        )
        return SoundDeviceInputStream(stream, frames_per_buffer)
