"""Memory-info parsing and the htop/procps usage formulas."""

import os
import re
from collections.abc import Callable

import psutil

from barstat.models import MemInfo, UsageMode, UsageSample

# Same chunk size the kernel file is read with by procps (BUFSIZ - 1)
READ_CHUNK = 8191

# Kernel label -> MemInfo field
LABELS: dict[str, str] = {
    "MemTotal": "mem_total",
    "MemFree": "mem_free",
    "MemAvailable": "mem_available",
    "Buffers": "buffers",
    "Cached": "cached",
    "SwapCached": "swap_cached",
    "SwapTotal": "swap_total",
    "SwapFree": "swap_free",
    "Shmem": "shmem",
    "SReclaimable": "s_reclaimable",
}

_LEADING_UINT = re.compile(r"\s*(\d+)")


class MemInfoError(Exception):
    """Raised when the memory-info source cannot be opened or read."""

    code = 0

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class MemInfoOpenError(MemInfoError):
    """The memory-info source could not be opened."""

    code = 1


class MemInfoReadError(MemInfoError):
    """The memory-info source was opened but yielded nothing."""

    code = 2


def default_meminfo_path() -> str:
    """Path of the kernel memory-info file under psutil's procfs root."""
    return os.path.join(psutil.PROCFS_PATH, "meminfo")


def _parse_value(text: str) -> int:
    match = _LEADING_UINT.match(text)
    return int(match.group(1)) if match else 0


def parse_meminfo(text: str) -> MemInfo:
    """
    Parse the ``label: value unit`` lines of a memory-info chunk.

    Unknown labels and lines without a colon are skipped, missing labels
    stay at zero, and parsing stops as soon as every known label was seen.
    The unit is never validated.
    """
    values: dict[str, int] = {}

    for line in text.splitlines():
        label, sep, rest = line.partition(":")
        if not sep:
            continue

        field = LABELS.get(label.strip())
        if field is None or field in values:
            continue

        values[field] = _parse_value(rest)
        if len(values) == len(LABELS):
            break

    return MemInfo(**values)


def read_meminfo(path: str | None = None) -> MemInfo:
    """
    Read and parse one chunk of the memory-info file.

    Args:
        path: File to read. Defaults to ``<procfs>/meminfo``.

    Raises:
        MemInfoOpenError: The file could not be opened.
        MemInfoReadError: Reading failed or returned no data.
    """
    path = path or default_meminfo_path()

    try:
        f = open(path, encoding="utf-8", errors="replace")
    except OSError as exc:
        raise MemInfoOpenError(path, exc.strerror or str(exc)) from exc

    with f:
        try:
            chunk = f.read(READ_CHUNK)
        except OSError as exc:
            raise MemInfoReadError(path, exc.strerror or str(exc)) from exc

    if not chunk:
        raise MemInfoReadError(path, "empty read")

    return parse_meminfo(chunk)


def usage_procps(info: MemInfo, swap: bool = False) -> UsageSample:
    """Used/total memory as computed by ``free`` from procps."""
    if swap:
        return UsageSample(
            used=max(0, info.swap_total - info.swap_free),
            total=info.swap_total,
        )

    available = info.mem_available
    if available == 0:
        available = info.mem_free
    # An available count above total means cgroup/lxc skewed values
    if available > info.mem_total:
        available = info.mem_free

    used = info.mem_total - available
    if used < 0:
        used = info.mem_total - info.mem_free

    return UsageSample(used=max(0, used), total=info.mem_total)


def usage_htop(info: MemInfo, swap: bool = False) -> UsageSample:
    """
    Used/total memory as computed by htop's memory meter.

    Shmem is part of Cached, so it is added back to used instead of being
    subtracted twice.
    """
    if swap:
        return UsageSample(
            used=max(0, info.swap_total - info.swap_free - info.swap_cached),
            total=info.swap_total,
        )

    used_diff = info.mem_free + info.cached + info.s_reclaimable + info.buffers
    if info.mem_total >= used_diff:
        used = info.mem_total - used_diff + info.shmem
    else:
        used = info.mem_total - info.mem_free + info.shmem

    return UsageSample(used=max(0, used), total=info.mem_total)


_FORMULAS: dict[UsageMode, Callable[[MemInfo, bool], UsageSample]] = {
    UsageMode.HTOP: usage_htop,
    UsageMode.PROCPS: usage_procps,
}


def compute_usage(info: MemInfo, mode: UsageMode, swap: bool = False) -> UsageSample:
    """Compute a usage sample with the formula selected by ``mode``."""
    return _FORMULAS[mode](info, swap)
