"""Streaming capture loop from the default input device into a sink."""

import threading
from contextlib import ExitStack
from enum import Enum
from typing import Optional

import numpy as np

from .backend import AudioBackend, InputStream, SoundDeviceBackend
from .errors import (
    BackendInitError,
    CaptureStateError,
    SinkCloseError,
    SinkOpenError,
    StreamOpenError,
    StreamReadError,
    StreamStartError,
)
from ..config import CaptureConfig
from ..sinks.base import StreamSink
from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class SessionState(Enum):
    """Lifecycle of a capture session."""
    IDLE = "idle"
    STREAMING = "streaming"
    STOPPING = "stopping"
    CLOSED = "closed"


class CaptureDevice:
    """
    Drives one capture session: backend, input stream and sink.

    ``start`` runs the session on the calling thread. ``start_async``
    runs the same loop on a background thread and ``stop`` cancels it.
    A device serves exactly one session; CLOSED is terminal.
    """

    def __init__(self, config: CaptureConfig, backend: Optional[AudioBackend] = None):
        """
        Initialize the capture device. No I/O happens here.

        Args:
            config: Validated capture parameters.
            backend: Audio backend, defaults to sounddevice/PortAudio.
        """
        self.config = config
        self._backend: AudioBackend = backend if backend is not None else SoundDeviceBackend()

        self._state = SessionState.IDLE
        self._state_lock = threading.Lock()
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None
        self._buffers_read = 0

    @property
    def state(self) -> SessionState:
        """Current session state."""
        with self._state_lock:
            return self._state

    @property
    def buffers_read(self) -> int:
        """Number of buffers successfully read from the stream."""
        return self._buffers_read

    @property
    def error(self) -> Optional[BaseException]:
        """Error that ended a background session, if any."""
        return self._error

    @property
    def is_running(self) -> bool:
        """Check if a background session is still alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self, sink: StreamSink) -> None:
        """
        Run a capture session on the calling thread.

        Blocks until the sink asks to stop, ``request_stop`` is observed,
        or the backend fails.

        Args:
            sink: Destination for captured buffers.

        Raises:
            CaptureStateError: The device is not idle.
            CaptureError: A stage of the session failed.
        """
        self._claim()
        self._run_session(sink)

    def start_async(self, sink: StreamSink) -> None:
        """
        Run a capture session on a background thread and return immediately.

        Args:
            sink: Destination for captured buffers.

        Raises:
            CaptureStateError: The device is not idle.
        """
        self._claim()
        self._thread = threading.Thread(
            target=self._run_in_background,
            args=(sink,),
            name="capture-session",
            daemon=True,
        )
        self._thread.start()

    def request_stop(self) -> None:
        """Ask the loop to end at the next buffer boundary without waiting."""
        with self._state_lock:
            if self._state is SessionState.STREAMING:
                self._state = SessionState.STOPPING
        self._cancel.set()

    def stop(self) -> None:
        """
        Cancel the background session and wait until it is torn down.

        An in-flight read is not interrupted; the loop exits after it
        returns. Calling ``stop`` again after the session ended does nothing.

        Raises:
            CaptureStateError: ``start_async`` was never called.
        """
        thread = self._thread
        if thread is None:
            raise CaptureStateError("stop() called without a background session")

        self.request_stop()
        if thread is not threading.current_thread():
            thread.join()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the background session to end without cancelling it.

        Args:
            timeout: Seconds to wait, or None to wait indefinitely.

        Returns:
            True if the session has ended, False on timeout.

        Raises:
            CaptureStateError: ``start_async`` was never called.
            CaptureError: The session ended with an error.
        """
        thread = self._thread
        if thread is None:
            raise CaptureStateError("wait() called without a background session")

        thread.join(timeout)
        if thread.is_alive():
            return False
        if self._error is not None:
            raise self._error
        return True

    def _claim(self) -> None:
        with self._state_lock:
            if self._state is not SessionState.IDLE:
                raise CaptureStateError(
                    f"Cannot start a session while the device is {self._state.value}"
                )
            self._state = SessionState.STREAMING

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            self._state = state

    def _run_in_background(self, sink: StreamSink) -> None:
        try:
            self._run_session(sink)
        except Exception as e:
            self._error = e
            logger.error(f"Capture session failed: {e}")

    def _run_session(self, sink: StreamSink) -> None:
        try:
            self._capture(sink)
        finally:
            self._set_state(SessionState.CLOSED)
            logger.info(f"Capture session closed after {self._buffers_read} buffers")

    def _capture(self, sink: StreamSink) -> None:
        logger.info("Initializing audio backend ...")
        try:
            self._backend.initialize()
        except Exception as e:
            self._set_state(SessionState.STOPPING)
            raise BackendInitError(f"Audio backend initialization failed: {e}") from e

        # Callbacks unwind in reverse: stream.stop, stream.close, sink.close, terminate
        with ExitStack() as stack:
            stack.callback(self._release, "terminate audio backend", self._backend.terminate)
            stack.push(_sink_closer(sink))
            try:
                self._open_and_stream(stack, sink)
            finally:
                # Every exit passes through STOPPING before teardown runs
                self._set_state(SessionState.STOPPING)

    def _open_and_stream(self, stack: ExitStack, sink: StreamSink) -> None:
        config = self.config

        try:
            sink.open()
        except Exception as e:
            raise SinkOpenError(f"Sink open failed: {e}") from e

        logger.info(
            f"Opening the default input stream: channels={config.channels}, "
            f"rate={config.sample_rate}Hz, frames_per_buffer={config.frames_per_buffer}"
        )
        try:
            stream = self._backend.open_default_input_stream(
                config.channels,
                config.sample_rate,
                config.frames_per_buffer,
                config.sample_dtype,
            )
        except Exception as e:
            logger.error("Can't open the default input stream")
            raise StreamOpenError(f"Opening the default input stream failed: {e}") from e
        stack.callback(self._release, "close input stream", stream.close)

        try:
            stream.start()
        except Exception as e:
            raise StreamStartError(f"Can't start the input stream: {e}") from e
        stack.callback(self._release, "stop input stream", stream.stop)

        self._stream_loop(stream, sink)

    def _stream_loop(self, stream: InputStream, sink: StreamSink) -> None:
        # Owned by this session and overwritten by every read
        buffer = np.zeros(self.config.buffer_shape, dtype=self.config.sample_dtype)
        view = buffer.view()
        view.flags.writeable = False

        while True:
            if self._cancel.is_set():
                logger.info("Stop requested, ending capture")
                break

            try:
                stream.read_into(buffer)
            except Exception as e:
                raise StreamReadError(
                    f"Can't read data from the stream after {self._buffers_read} buffers: {e}"
                ) from e
            self._buffers_read += 1

            if not sink.write(view):
                logger.info("Sink requested stop")
                break
            if self._cancel.is_set():
                logger.info("Stop requested, ending capture")
                break

    @staticmethod
    def _release(action: str, release) -> None:
        try:
            release()
        except Exception as e:
            logger.warning(f"Failed to {action}: {e}")


def _sink_closer(sink: StreamSink):
    """Exit callback closing ``sink`` without masking an earlier error."""

    def close_sink(exc_type, exc, tb) -> bool:
        try:
            sink.close()
        except Exception as e:
            if exc_type is not None:
                logger.error(f"Sink close failed during teardown: {e}")
                return False
            raise SinkCloseError(f"Sink close failed: {e}") from e
        return False

    return close_sink
