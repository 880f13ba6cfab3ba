"""Shared fixtures for capture tests."""

import pytest

from src.config import CaptureConfig


@pytest.fixture
def capture_config():
    return CaptureConfig(channels=2, sample_rate=44100, frames_per_buffer=64, bit_depth=16)
