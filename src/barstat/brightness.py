"""barstat-brightness - backlight percentage, reprinted on udev change events."""

import argparse
import logging
import os
import re
import sys
from dataclasses import dataclass
from typing import Protocol, TextIO

import pyudev

from barstat.config import setup_logging
from barstat.formatting import format_brightness
from barstat.models import BrightnessSample

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

DEFAULT_ACTUAL_PATH = "/sys/class/backlight/intel_backlight/actual_brightness"
DEFAULT_MAX_PATH = "/sys/class/backlight/intel_backlight/max_brightness"

SUBSYSTEM = "backlight"

# sysfs brightness files hold a short number; only the head is read
READ_SIZE = 16

_LEADING_FLOAT = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class BrightnessReadError(Exception):
    """Raised when a brightness file cannot be opened or is empty."""


class EventSourceError(Exception):
    """Raised when the device-change channel cannot be set up or polled."""


@dataclass(slots=True, frozen=True)
class BrightnessConfig:
    """Paths of the two brightness files."""

    actual_path: str = DEFAULT_ACTUAL_PATH
    max_path: str = DEFAULT_MAX_PATH


@dataclass(slots=True, frozen=True)
class DeviceEvent:
    """A device notification as seen by the reporter."""

    action: str
    subsystem: str = SUBSYSTEM


class EventSource(Protocol):
    """Blocking source of device-change notifications."""

    def next_event(self) -> DeviceEvent | None:
        """
        Block until the next notification.

        Returns None once the source is closed. Raises EventSourceError
        when waiting fails.
        """
        ...


class UdevEventSource:
    """EventSource backed by a pyudev netlink monitor on the backlight subsystem."""

    def __init__(self, monitor: pyudev.Monitor) -> None:
        self._monitor = monitor

    @classmethod
    def open(cls, subsystem: str = SUBSYSTEM) -> "UdevEventSource":
        """
        Create a udev monitor filtered on ``subsystem`` (any devtype).

        Raises:
            EventSourceError: The monitor could not be created or filtered.
        """
        try:
            context = pyudev.Context()
            monitor = pyudev.Monitor.from_netlink(context, source="udev")
        # pyudev raises ImportError when libudev itself cannot be loaded
        except (ImportError, OSError, ValueError) as exc:
            raise EventSourceError(f"creating udev monitor: {exc}") from exc

        try:
            monitor.filter_by(subsystem=subsystem)
        except (OSError, ValueError) as exc:
            raise EventSourceError(f"adding filter to udev monitor: {exc}") from exc

        try:
            monitor.start()
        except OSError as exc:
            raise EventSourceError(f"starting udev monitor: {exc}") from exc

        return cls(monitor)

    def next_event(self) -> DeviceEvent:
        """Block until udev delivers a device; never returns None."""
        while True:
            try:
                device = self._monitor.poll(timeout=None)
            except OSError as exc:
                raise EventSourceError(f"poll failed: {exc}") from exc

            # poll yields None when libudev hands back no device; keep waiting
            if device is not None:
                break

        return DeviceEvent(action=device.action or "", subsystem=device.subsystem or "")


def parse_leading_float(text: str) -> float:
    """Leading decimal number of ``text``; 0.0 when there is none."""
    match = _LEADING_FLOAT.match(text)
    return float(match.group(1)) if match else 0.0


def read_value(path: str) -> float:
    """
    Read the numeric value at the start of a brightness file.

    Raises:
        BrightnessReadError: The file could not be opened or read, or is empty.
    """
    try:
        with open(path, encoding="ascii", errors="replace") as f:
            head = f.read(READ_SIZE)
    except OSError as exc:
        raise BrightnessReadError(f"{path}: {exc.strerror or exc}") from exc

    if not head:
        raise BrightnessReadError(f"{path}: empty file")
    return parse_leading_float(head)


class _StderrHelpParser(argparse.ArgumentParser):
    """ArgumentParser that keeps --help off stdout, the status channel."""

    def print_help(self, file: TextIO | None = None) -> None:
        super().print_help(file or sys.stderr)


class BrightnessReporter:
    """Prints the backlight percentage at startup and after each change event."""

    def __init__(self, config: BrightnessConfig, stream: TextIO | None = None) -> None:
        self._config = config
        self._stream = stream

    def read_sample(self) -> BrightnessSample | None:
        """Read both brightness files; None when either one fails."""
        try:
            current = read_value(self._config.actual_path)
            maximum = read_value(self._config.max_path)
        except BrightnessReadError as exc:
            logger.warning("Failed to read brightness: %s", exc)
            return None
        return BrightnessSample(current=current, maximum=maximum)

    def report_once(self) -> None:
        stream = self._stream or sys.stdout
        stream.write(format_brightness(self.read_sample()) + "\n")
        stream.flush()

    def handle(self, event: DeviceEvent) -> bool:
        """Reprint on ``change`` events. Returns True when a line was printed."""
        if not event.action.startswith("change"):
            logger.debug("Ignoring %s event", event.action)
            return False
        self.report_once()
        return True

    def run(self, source: EventSource) -> int:
        """
        Handle events until the source closes or fails.

        Returns:
            Process exit status: 0 when the source closed, 1 on a wait error.
        """
        while True:
            try:
                event = source.next_event()
            except EventSourceError as exc:
                logger.error("%s", exc)
                return 1

            if event is None:
                return 0
            self.handle(event)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser for ``barstat-brightness``."""
    parser = _StderrHelpParser(
        prog="barstat-brightness",
        description="Read actual brightness value in non-blocking style.",
    )
    parser.add_argument("-a", "--actual_brightness_path", default=DEFAULT_ACTUAL_PATH,
                        help="path to file with actual brightness string")
    parser.add_argument("-m", "--max_brightness_path", default=DEFAULT_MAX_PATH,
                        help="path to file with max brightness string")
    parser.add_argument("-V", "--version", action="version", version=VERSION,
                        help="print version and exit")
    return parser


def main(argv: list[str] | None = None, source: EventSource | None = None) -> int:
    """Entry point for barstat-brightness."""
    setup_logging(os.environ)
    args = build_parser().parse_args(argv)
    reporter = BrightnessReporter(
        BrightnessConfig(
            actual_path=args.actual_brightness_path,
            max_path=args.max_brightness_path,
        )
    )

    reporter.report_once()

    if source is None:
        try:
            source = UdevEventSource.open()
        except EventSourceError as exc:
            logger.error("%s", exc)
            return 1

    try:
        return reporter.run(source)
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
