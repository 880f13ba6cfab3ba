"""Sink capability consumed by the capture loop."""

from typing import Protocol, runtime_checkable

import numpy as np


@runtime_checkable
class StreamSink(Protocol):
    """
    Destination for captured audio buffers.

    The capture loop calls ``open`` once, ``write`` once per buffer and
    ``close`` once, in that order. The buffer passed to ``write`` is a
    read-only view that is overwritten by the next read; copy it to keep it.
    """

    def open(self) -> None:
        """Acquire destination resources. Raise on failure."""
        ...

    def write(self, buffer: np.ndarray) -> bool:
        """Persist one buffer. Return False to end the capture session."""
        ...

    def close(self) -> None:
        """Flush and release resources. Safe after a failed ``open``."""
        ...
