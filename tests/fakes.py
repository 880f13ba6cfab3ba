"""Test doubles for the audio backend and sinks."""

import threading
from typing import List, Optional

import numpy as np


class FakeStream:
    """Input stream that fills each buffer with the read number."""

    def __init__(self, calls: List[str], fail_read_on: Optional[int] = None,
                 fail_start: bool = False, read_gate: Optional[threading.Event] = None):
        self.calls = calls
        self.fail_read_on = fail_read_on
        self.fail_start = fail_start
        self.read_gate = read_gate
        self.reads = 0
        self.read_started = threading.Event()

    def start(self):
        self.calls.append("stream.start")
        if self.fail_start:
            raise RuntimeError("device busy")

    def read_into(self, buffer):
        self.read_started.set()
        if self.read_gate is not None:
            self.read_gate.wait()
        self.reads += 1
        if self.fail_read_on == self.reads:
            raise RuntimeError("input overflow")
        buffer[...] = self.reads

    def stop(self):
        self.calls.append("stream.stop")

    def close(self):
        self.calls.append("stream.close")


class FakeBackend:
    """Backend double recording lifecycle calls in order."""

    def __init__(self, fail_init: bool = False, fail_open: bool = False, **stream_kwargs):
        self.calls: List[str] = []
        self.fail_init = fail_init
        self.fail_open = fail_open
        self.stream = FakeStream(self.calls, **stream_kwargs)
        self.open_args = None

    def initialize(self):
        self.calls.append("backend.initialize")
        if self.fail_init:
            raise RuntimeError("no audio subsystem")

    def terminate(self):
        self.calls.append("backend.terminate")

    def open_default_input_stream(self, channels, sample_rate, frames_per_buffer, dtype):
        self.calls.append("backend.open_stream")
        self.open_args = (channels, sample_rate, frames_per_buffer, dtype)
        if self.fail_open:
            raise RuntimeError("invalid number of channels")
        return self.stream


class RecordingSink:
    """Sink double that logs calls into the backend's call list."""

    def __init__(self, calls: List[str], stop_after: Optional[int] = None,
                 fail_open: bool = False, fail_close: bool = False):
        self.calls = calls
        self.stop_after = stop_after
        self.fail_open = fail_open
        self.fail_close = fail_close
        self.received: List[np.ndarray] = []
        self.writable_flags: List[bool] = []

    def open(self):
        self.calls.append("sink.open")
        if self.fail_open:
            raise OSError("permission denied")

    def write(self, buffer):
        self.calls.append("sink.write")
        self.writable_flags.append(buffer.flags.writeable)
        self.received.append(buffer.copy())
        if self.stop_after is not None:
            return len(self.received) < self.stop_after
        return True

    def close(self):
        self.calls.append("sink.close")
        if self.fail_close:
            raise OSError("disk full")

    @property
    def writes(self) -> int:
        return len(self.received)


