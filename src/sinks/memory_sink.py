"""In-memory sink that keeps a copy of every buffer."""

from typing import List, Optional

import numpy as np


class MemorySink:
    """Collects captured buffers in a list."""

    def __init__(self, max_buffers: Optional[int] = None):
        self.max_buffers = max_buffers
        self.buffers: List[np.ndarray] = []
        self.open_count = 0
        self.close_count = 0
        self.is_open = False

    def open(self) -> None:
        self.open_count += 1
        self.is_open = True

    def write(self, buffer: np.ndarray) -> bool:
        # The capture loop reuses its buffer, so keep a copy
        self.buffers.append(np.array(buffer, copy=True))
        if self.max_buffers is not None:
            return len(self.buffers) < self.max_buffers
        return True

    def close(self) -> None:
        if not self.is_open:
            return
        self.is_open = False
        self.close_count += 1

    def samples(self) -> np.ndarray:
        """All captured samples concatenated as (frames, channels)."""
        if not self.buffers:
            return np.empty((0, 0))
        return np.concatenate(self.buffers, axis=0)
