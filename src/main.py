"""Main entry point for MicRecorder."""

import argparse
import signal
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config import AppConfig, CaptureConfig, OutputConfig, apply_settings, get_settings, load_config
from .audio import CaptureDevice, CaptureError, get_default_input_device, list_input_devices
from .audio.backend import AudioBackend
from .audio.device_manager import format_devices
from .sinks import WavFileSink
from .utils.logger import configure_logging, setup_logger

logger = setup_logger(__name__)


class RecorderApp:
    """Wires configuration, capture device and WAV sink together."""

    def __init__(self, config: AppConfig, backend: Optional[AudioBackend] = None):
        self.config = config
        self.backend = backend

        self.device: Optional[CaptureDevice] = None
        self.sink: Optional[WavFileSink] = None

    def initialize(self) -> None:
        """Create the capture device and sink from config."""
        capture = self.config.capture
        output = self.config.output

        max_buffers = None
        if output.max_seconds is not None:
            max_buffers = capture.buffers_for_seconds(output.max_seconds)

        self.device = CaptureDevice(capture, backend=self.backend)
        self.sink = WavFileSink(
            str(output.path),
            channels=capture.channels,
            sample_rate=capture.sample_rate,
            bit_depth=capture.bit_depth,
            max_buffers=max_buffers,
        )

    def run(self) -> None:
        """Record on the calling thread until the sink stops or Ctrl+C."""
        self.initialize()
        self._log_default_device()

        previous = signal.signal(signal.SIGINT, self._on_interrupt)
        try:
            self.device.start(self.sink)
        finally:
            signal.signal(signal.SIGINT, previous)

    def run_background(self) -> None:
        """Record on a background thread, stopping on Ctrl+C."""
        self.initialize()
        self._log_default_device()

        self.device.start_async(self.sink)
        try:
            logger.info("Press Ctrl+C to stop...")
            while not self.device.wait(timeout=0.5):
                pass
        except KeyboardInterrupt:
            logger.info("Stopping...")
            self.device.stop()
            if self.device.error is not None:
                raise self.device.error

    def _on_interrupt(self, signum, frame) -> None:
        logger.info("Interrupt received, finishing current buffer...")
        self.device.request_stop()

    def _log_default_device(self) -> None:
        try:
            device = get_default_input_device()
        except Exception as e:
            logger.debug(f"Could not query default input device: {e}")
            return
        if device:
            logger.info(f"Using default input device: {device}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mic-recorder",
        description="Record the default audio input device to a WAV file.",
    )
    parser.add_argument("--config", default="config.json", help="Path to JSON config file")
    parser.add_argument("--output", help="Output WAV file path")
    parser.add_argument("--channels", type=int, help="Number of input channels")
    parser.add_argument("--rate", type=float, help="Sample rate in Hz")
    parser.add_argument("--frames", type=int, help="Frames per buffer")
    parser.add_argument("--bits", type=int, choices=[8, 16, 32], help="Bits per sample")
    parser.add_argument("--seconds", type=float, help="Stop after this many seconds")
    parser.add_argument("--background", action="store_true",
                        help="Capture on a background thread")
    parser.add_argument("--list-devices", action="store_true",
                        help="List input devices and exit")
    return parser


def resolve_config(args: argparse.Namespace) -> AppConfig:
    """Load config file, apply environment settings, then CLI overrides."""
    config = apply_settings(load_config(args.config), get_settings())

    capture_updates = {
        key: value
        for key, value in (
            ("channels", args.channels),
            ("sample_rate", args.rate),
            ("frames_per_buffer", args.frames),
            ("bit_depth", args.bits),
        )
        if value is not None
    }
    capture = CaptureConfig(**{**config.capture.model_dump(), **capture_updates})

    output_updates = {}
    if args.output:
        output_updates.update(directory="", filename=args.output)
    if args.seconds is not None:
        output_updates["max_seconds"] = args.seconds
    output = OutputConfig(**{**config.output.model_dump(), **output_updates})

    return config.model_copy(update={"capture": capture, "output": output})


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_devices:
        print(format_devices(list_input_devices()))
        return 0

    try:
        config = resolve_config(args)
    except ValidationError as e:
        parser.error(f"invalid configuration:\n{e}")

    configure_logging(config.logging.level, config.logging.format)

    app = RecorderApp(config)
    try:
        if args.background:
            app.run_background()
        else:
            app.run()
    except CaptureError as e:
        logger.error(f"Recording failed ({e.stage}): {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
