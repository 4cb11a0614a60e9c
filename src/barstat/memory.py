"""barstat-memory - periodic memory/swap usage line for a status bar."""

import logging
import os
import sys
import threading
from typing import TextIO

from barstat.config import DisplayConfig, build_parser, resolve, setup_logging
from barstat.formatting import format_unavailable, format_usage
from barstat.meminfo import MemInfoError, compute_usage, read_meminfo

logger = logging.getLogger(__name__)


class MemoryReporter:
    """
    Polls the memory-info file and prints one usage line per refresh.

    Runs in the calling thread. Sleeping is done on a stop event so the
    loop can be ended from a signal handler or a test.
    """

    def __init__(self, config: DisplayConfig, stream: TextIO | None = None) -> None:
        """
        Initialize the MemoryReporter.

        Args:
            config: Resolved display configuration.
            stream: Output stream. Defaults to ``sys.stdout`` at write time.
        """
        self._config = config
        self._stream = stream
        self._stop_event = threading.Event()

    @property
    def config(self) -> DisplayConfig:
        """Get the resolved display configuration."""
        return self._config

    def stop(self) -> None:
        """Ask the reporting loop to end after the current cycle."""
        self._stop_event.set()

    def render(self) -> str:
        """Read the memory-info file once and build the status line."""
        config = self._config
        try:
            info = read_meminfo(config.meminfo_path)
        except MemInfoError as exc:
            logger.warning("Cannot read memory info (code %d): %s", exc.code, exc)
            return format_unavailable(config.label)

        sample = compute_usage(info, config.mode, swap=config.swap)
        return format_usage(
            config.label,
            sample,
            sigfig=config.sigfig,
            warning=config.warning,
            critical=config.critical,
            show_percent=config.show_percent,
        )

    def report_once(self) -> None:
        """Print a single status line and flush it to the consumer."""
        stream = self._stream or sys.stdout
        stream.write(self.render() + "\n")
        stream.flush()

    def run(self) -> None:
        """Report, then wait ``refresh_time`` seconds, until stopped."""
        while not self._stop_event.is_set():
            self.report_once()
            self._stop_event.wait(timeout=self._config.refresh_time)


def main(argv: list[str] | None = None) -> int:
    """Entry point for barstat-memory."""
    setup_logging(os.environ)
    args = build_parser().parse_args(argv)
    config = resolve(DisplayConfig(), os.environ, args)
    logger.debug("Resolved configuration: %s", config)

    reporter = MemoryReporter(config)
    try:
        reporter.run()
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
