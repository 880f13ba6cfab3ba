"""WAV file sink for captured PCM buffers."""

import threading
import wave
from pathlib import Path
from typing import Optional

import numpy as np

from ..utils.logger import setup_logger

logger = setup_logger(__name__)

# Bit depth -> sample type stored in the WAV container
WAV_DTYPES = {
    8: np.dtype("u1"),  # WAV stores 8-bit PCM unsigned
    16: np.dtype("<i2"),
    32: np.dtype("<i4"),
}


class WavFileSink:
    """
    Writes captured buffers to a WAV file.

    Stops the capture when ``max_buffers`` buffers have been written or
    after ``request_stop`` is called.
    """

    def __init__(
        self,
        path: str,
        channels: int,
        sample_rate: float,
        bit_depth: int = 16,
        max_buffers: Optional[int] = None,
    ):
        """
        Initialize the sink. The file is created in ``open``.

        Args:
            path: Output WAV file path.
            channels: Number of interleaved channels.
            sample_rate: Sample rate in Hz.
            bit_depth: Bits per sample (8, 16 or 32).
            max_buffers: Stop after this many buffers, or never if None.
        """
        if bit_depth not in WAV_DTYPES:
            raise ValueError(f"Unsupported bit depth {bit_depth}")
        if max_buffers is not None and max_buffers <= 0:
            raise ValueError("max_buffers must be positive")

        self.path = Path(path)
        self.channels = channels
        self.sample_rate = sample_rate
        self.bit_depth = bit_depth
        self.max_buffers = max_buffers

        self._wave: Optional[wave.Wave_write] = None
        self._adapter: Optional[np.ndarray] = None
        self._stop = threading.Event()
        self.buffers_written = 0
        self.frames_written = 0

    def open(self) -> None:
        """Create the output file and configure the WAV header."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        wave_file = wave.open(str(self.path), "wb")
        try:
            wave_file.setnchannels(self.channels)
            wave_file.setsampwidth(self.bit_depth // 8)
            wave_file.setframerate(int(round(self.sample_rate)))
        except Exception:
            wave_file.close()
            raise

        self._wave = wave_file
        logger.info(f"Recording to {self.path}")

    def write(self, buffer: np.ndarray) -> bool:
        """
        Append one buffer to the file.

        Args:
            buffer: Integer samples shaped (frames, channels). Not retained.

        Returns:
            True to keep capturing, False to stop.
        """
        if self._wave is None:
            logger.error("WAV sink written before open")
            return False

        try:
            frames = self._adapt(buffer)
            self._wave.writeframes(frames.tobytes())
        except (OSError, wave.Error, ValueError, TypeError) as e:
            logger.error(f"WAV write failed for {self.path}: {e}")
            return False

        self.buffers_written += 1
        self.frames_written += len(frames)

        if self.max_buffers is not None and self.buffers_written >= self.max_buffers:
            logger.info(f"Reached buffer limit ({self.max_buffers})")
            return False
        return not self._stop.is_set()

    def close(self) -> None:
        """Finalize the WAV header and release the file."""
        if self._wave is None:
            return

        wave_file = self._wave
        self._wave = None
        wave_file.close()
        logger.info(f"Wrote {self.frames_written} frames to {self.path}")

    def request_stop(self) -> None:
        """Make the next ``write`` end the capture session."""
        self._stop.set()

    def _adapt(self, buffer: np.ndarray) -> np.ndarray:
        """Copy ``buffer`` into the reusable container-format buffer."""
        samples = np.asarray(buffer)
        if samples.dtype.kind != "i" or samples.dtype.itemsize * 8 != self.bit_depth:
            raise TypeError(
                f"Expected {self.bit_depth}-bit integer samples, got {samples.dtype}"
            )
        samples = samples.reshape(-1, self.channels)
        if self._adapter is None or self._adapter.shape != samples.shape:
            self._adapter = np.empty(samples.shape, dtype=WAV_DTYPES[self.bit_depth])

        if self.bit_depth == 8:
            # Widen before offsetting so -128..127 maps onto 0..255
            np.copyto(self._adapter, samples.astype(np.int16) + 128, casting="unsafe")
        else:
            np.copyto(self._adapter, samples, casting="same_kind")
        return self._adapter
