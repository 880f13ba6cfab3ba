"""Errors raised by the capture loop.

Each error names the stage of the session that failed. The original
backend or sink exception is kept as ``__cause__``.
"""


class CaptureError(Exception):
    """Base class for capture session failures."""

    stage = "capture"


class BackendInitError(CaptureError):
    """Raised when the audio backend cannot be initialized."""

    stage = "backend_init"


class SinkOpenError(CaptureError):
    """Raised when the sink fails to open its destination."""

    stage = "sink_open"


class StreamOpenError(CaptureError):
    """Raised when the default input stream cannot be opened."""

    stage = "stream_open"


class StreamStartError(CaptureError):
    """Raised when the input stream fails to start."""

    stage = "stream_start"


class StreamReadError(CaptureError):
    """Raised when a blocking read from the stream fails."""

    stage = "stream_read"


class SinkCloseError(CaptureError):
    """Raised when the sink fails to close and no earlier error is pending."""

    stage = "sink_close"


class CaptureStateError(CaptureError):
    """Raised when start/stop is called in the wrong session state."""

    stage = "state"
