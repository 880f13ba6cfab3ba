"""Sinks that receive captured audio buffers."""

from .base import StreamSink
from .wav_sink import WavFileSink
from .memory_sink import MemorySink

__all__ = ["StreamSink", "WavFileSink", "MemorySink"]
