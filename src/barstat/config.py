"""Layered configuration for the memory reporter."""

import argparse
import dataclasses
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from barstat.meminfo import default_meminfo_path
from barstat.models import UsageMode

logger = logging.getLogger(__name__)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")

# Environment variable -> DisplayConfig field
INT_ENV = {
    "REFRESH_TIME": "refresh_time",
    "SIGFIG": "sigfig",
    "WARN_PERCENT": "warning",
    "CRIT_PERCENT": "critical",
}
FLAG_ENV = {
    "PERCENT": "show_percent",
    "SWAP": "swap",
}


@dataclass(slots=True, frozen=True)
class DisplayConfig:
    """Memory reporter settings, resolved once at startup."""

    refresh_time: int = 1  # seconds
    sigfig: int = 2
    warning: int = 50  # %
    critical: int = 80  # %
    label: str = "MEM "
    show_percent: bool = False
    swap: bool = False
    mode: UsageMode = UsageMode.HTOP
    meminfo_path: str = field(default_factory=default_meminfo_path)


def atoi(text: str) -> int:
    """Leading integer of ``text``, 0 when there is none."""
    match = _LEADING_INT.match(text)
    if match is None:
        logger.warning("Ignoring non-numeric value %r, using 0", text)
        return 0
    return int(match.group(1))


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser for ``barstat-memory``."""
    parser = argparse.ArgumentParser(
        prog="barstat-memory",
        description="Print memory or swap usage for a status bar.",
    )
    parser.add_argument("-t", dest="refresh_time", type=int, metavar="seconds",
                        help="Refresh time (default: 1)")
    parser.add_argument("-f", dest="sigfig", type=int, metavar="sigfig",
                        help="Minimum number of significant figures (default: 2)")
    parser.add_argument("-w", dest="warning", type=int, metavar="%",
                        help="Warning threshold (orange color) (default: 50)")
    parser.add_argument("-c", dest="critical", type=int, metavar="%",
                        help="Critical threshold (red color) (default: 80)")
    parser.add_argument("-l", dest="label", metavar="label",
                        help='Label to print before the memory usage (default: "MEM ")')
    parser.add_argument("-p", dest="show_percent", action="store_true",
                        help="Append percentage after usage display")
    parser.add_argument("-s", dest="swap", action="store_true",
                        help="Show swap usage instead of ram usage")
    parser.add_argument("-d", dest="procps", action="store_true",
                        help="Compute usage as in procps instead of as in htop")
    return parser


def resolve(
    defaults: DisplayConfig,
    env: Mapping[str, str],
    args: argparse.Namespace,
) -> DisplayConfig:
    """
    Merge defaults, environment variables and parsed arguments.

    Later layers win: defaults < environment < command line. Flag variables
    (``PERCENT``, ``SWAP``, ``PROCPS``) only need to be present.

    Args:
        defaults: Base configuration.
        env: Environment mapping, usually ``os.environ``.
        args: Namespace produced by :func:`build_parser`.

    Returns:
        A new DisplayConfig; ``defaults`` is left untouched.
    """
    changes: dict[str, object] = {}

    for name, attr in INT_ENV.items():
        if name in env:
            changes[attr] = atoi(env[name])
    if "LABEL" in env:
        changes["label"] = env["LABEL"]
    for name, attr in FLAG_ENV.items():
        if name in env:
            changes[attr] = True
    if "PROCPS" in env:
        changes["mode"] = UsageMode.PROCPS
    if "PROC_MEMINFO" in env:
        changes["meminfo_path"] = env["PROC_MEMINFO"]

    for attr in ("refresh_time", "sigfig", "warning", "critical", "label"):
        value = getattr(args, attr, None)
        if value is not None:
            changes[attr] = value
    for attr in ("show_percent", "swap"):
        if getattr(args, attr, False):
            changes[attr] = True
    if getattr(args, "procps", False):
        changes["mode"] = UsageMode.PROCPS

    return dataclasses.replace(defaults, **changes)


def setup_logging(env: Mapping[str, str]) -> None:
    """Send log records to stderr at the level named by ``BARSTAT_LOG_LEVEL``."""
    level = env.get("BARSTAT_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=logging.getLevelNamesMapping().get(level, logging.WARNING),
        format="%(name)s: %(levelname)s: %(message)s",
    )
