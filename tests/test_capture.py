"""Tests for the synchronous capture loop."""

import pytest

from src.audio import (
    BackendInitError,
    CaptureDevice,
    CaptureStateError,
    SessionState,
    SinkCloseError,
    SinkOpenError,
    StreamOpenError,
    StreamReadError,
    StreamStartError,
)
from src.sinks import MemorySink

from fakes import FakeBackend, RecordingSink


def test_sink_stop_on_third_write(capture_config):
    """Test that the sink's stop decision ends the session cleanly."""
    backend = FakeBackend()
    sink = RecordingSink(backend.calls, stop_after=3)
    device = CaptureDevice(capture_config, backend=backend)

    device.start(sink)

    assert sink.writes == 3
    assert device.buffers_read == 3
    assert device.state is SessionState.CLOSED
    assert backend.calls.count("sink.open") == 1
    assert backend.calls.count("sink.close") == 1


def test_teardown_runs_in_reverse_order(capture_config):
    """Test that resources are released in reverse order of acquisition."""
    backend = FakeBackend()
    sink = RecordingSink(backend.calls, stop_after=1)

    CaptureDevice(capture_config, backend=backend).start(sink)

    assert backend.calls == [
        "backend.initialize",
        "sink.open",
        "backend.open_stream",
        "stream.start",
        "sink.write",
        "stream.stop",
        "stream.close",
        "sink.close",
        "backend.terminate",
    ]


def test_stream_opened_with_config(capture_config):
    """Test that the stream is opened with the configured parameters."""
    backend = FakeBackend()
    sink = RecordingSink(backend.calls, stop_after=1)

    CaptureDevice(capture_config, backend=backend).start(sink)

    assert backend.open_args == (2, 44100.0, 64, "int16")


def test_buffer_shape_and_read_only_view(capture_config):
    """Test that the sink gets a read-only (frames, channels) buffer."""
    backend = FakeBackend()
    sink = RecordingSink(backend.calls, stop_after=2)

    CaptureDevice(capture_config, backend=backend).start(sink)

    assert sink.received[0].shape == (64, 2)
    assert sink.received[0].dtype.name == "int16"
    assert sink.writable_flags == [False, False]
    assert (sink.received[0] == 1).all()
    assert (sink.received[1] == 2).all()


def test_buffer_reused_between_reads(capture_config):
    """Test that a sink keeping the view sees it overwritten by the next read."""
    backend = FakeBackend()
    views = []

    class KeepingSink(RecordingSink):
        def write(self, buffer):
            views.append(buffer)
            return super().write(buffer)

    sink = KeepingSink(backend.calls, stop_after=2)
    CaptureDevice(capture_config, backend=backend).start(sink)

    assert (views[0] == 2).all()
    assert (sink.received[0] == 1).all()


def test_read_failure_on_third_read(capture_config):
    """Test that a read error ends the session with StreamReadError."""
    backend = FakeBackend(fail_read_on=3)
    sink = RecordingSink(backend.calls)
    device = CaptureDevice(capture_config, backend=backend)

    with pytest.raises(StreamReadError) as exc_info:
        device.start(sink)

    assert sink.writes == 2
    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert exc_info.value.stage == "stream_read"
    assert backend.calls[-4:] == ["stream.stop", "stream.close", "sink.close", "backend.terminate"]
    assert device.state is SessionState.CLOSED


def test_stream_open_failure(capture_config):
    """Test that a failed stream open still closes the sink and backend."""
    backend = FakeBackend(fail_open=True)
    sink = RecordingSink(backend.calls)

    with pytest.raises(StreamOpenError):
        CaptureDevice(capture_config, backend=backend).start(sink)

    assert backend.calls == [
        "backend.initialize",
        "sink.open",
        "backend.open_stream",
        "sink.close",
        "backend.terminate",
    ]


def test_stream_start_failure(capture_config):
    """Test that a failed stream start closes the stream, sink and backend."""
    backend = FakeBackend(fail_start=True)
    sink = RecordingSink(backend.calls)

    with pytest.raises(StreamStartError):
        CaptureDevice(capture_config, backend=backend).start(sink)

    assert "stream.stop" not in backend.calls
    assert backend.calls[-3:] == ["stream.close", "sink.close", "backend.terminate"]
    assert sink.writes == 0


def test_sink_open_failure(capture_config):
    """Test that a sink open failure terminates the backend."""
    backend = FakeBackend()
    sink = RecordingSink(backend.calls, fail_open=True)

    with pytest.raises(SinkOpenError) as exc_info:
        CaptureDevice(capture_config, backend=backend).start(sink)

    assert isinstance(exc_info.value.__cause__, OSError)
    assert "backend.open_stream" not in backend.calls
    assert backend.calls[-2:] == ["sink.close", "backend.terminate"]


def test_backend_init_failure(capture_config):
    """Test that nothing else is touched when the backend fails to initialize."""
    backend = FakeBackend(fail_init=True)
    sink = RecordingSink(backend.calls)

    with pytest.raises(BackendInitError):
        CaptureDevice(capture_config, backend=backend).start(sink)

    assert backend.calls == ["backend.initialize"]


def test_sink_close_failure_after_clean_stop(capture_config):
    """Test that a close failure is reported when nothing else failed."""
    backend = FakeBackend()
    sink = RecordingSink(backend.calls, stop_after=1, fail_close=True)

    with pytest.raises(SinkCloseError):
        CaptureDevice(capture_config, backend=backend).start(sink)

    assert backend.calls[-1] == "backend.terminate"


def test_sink_close_failure_does_not_mask_read_error(capture_config):
    """Test that the earlier read error wins over a close failure."""
    backend = FakeBackend(fail_read_on=1)
    sink = RecordingSink(backend.calls, fail_close=True)

    with pytest.raises(StreamReadError):
        CaptureDevice(capture_config, backend=backend).start(sink)

    assert backend.calls[-1] == "backend.terminate"


def test_device_serves_one_session(capture_config):
    """Test that a closed device cannot be started again."""
    backend = FakeBackend()
    device = CaptureDevice(capture_config, backend=backend)
    device.start(RecordingSink(backend.calls, stop_after=1))

    with pytest.raises(CaptureStateError):
        device.start(RecordingSink(backend.calls))


def test_request_stop_before_start(capture_config):
    """Test that a pending stop request ends the loop before any read."""
    backend = FakeBackend()
    sink = RecordingSink(backend.calls)
    device = CaptureDevice(capture_config, backend=backend)

    device.request_stop()
    device.start(sink)

    assert sink.writes == 0
    assert backend.stream.reads == 0
    assert backend.calls.count("sink.close") == 1


def test_memory_sink_collects_samples(capture_config):
    """Test capturing into the in-memory sink."""
    backend = FakeBackend()
    sink = MemorySink(max_buffers=4)

    CaptureDevice(capture_config, backend=backend).start(sink)

    samples = sink.samples()
    assert samples.shape == (4 * 64, 2)
    assert samples[0, 0] == 1
    assert samples[-1, 1] == 4
    assert sink.open_count == 1
    assert sink.close_count == 1


@pytest.mark.parametrize("backend_kwargs,stop_after,expected", [
    ({}, 1, None),
    ({"fail_open": True}, None, StreamOpenError),
    ({"fail_start": True}, None, StreamStartError),
    ({"fail_read_on": 2}, None, StreamReadError),
])
def test_teardown_runs_in_stopping_state(capture_config, backend_kwargs, stop_after, expected):
    """Test that every exit path enters STOPPING before the sink is closed."""
    backend = FakeBackend(**backend_kwargs)
    close_states = []

    class StateSink(RecordingSink):
        def close(self):
            close_states.append(device.state)
            super().close()

    device = CaptureDevice(capture_config, backend=backend)
    sink = StateSink(backend.calls, stop_after=stop_after)
    if expected is None:
        device.start(sink)
    else:
        with pytest.raises(expected):
            device.start(sink)

    assert close_states == [SessionState.STOPPING]
    assert device.state is SessionState.CLOSED


def test_backend_init_failure_ends_closed(capture_config):
    """Test the state after the backend fails to initialize."""
    device = CaptureDevice(capture_config, backend=FakeBackend(fail_init=True))

    with pytest.raises(BackendInitError):
        device.start(RecordingSink([]))

    assert device.state is SessionState.CLOSED
