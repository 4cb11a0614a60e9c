"""Data models for barstat."""

from dataclasses import dataclass
from enum import Enum


class UsageMode(Enum):
    """Convention used to compute "used" memory from raw kernel counters."""

    HTOP = "htop"
    PROCPS = "procps"


@dataclass(slots=True, frozen=True)
class MemInfo:
    """Immutable snapshot of the counters read from /proc/meminfo (kiB)."""

    mem_total: int = 0
    mem_free: int = 0
    mem_available: int = 0
    buffers: int = 0
    cached: int = 0
    swap_cached: int = 0
    swap_total: int = 0
    swap_free: int = 0
    shmem: int = 0
    s_reclaimable: int = 0


@dataclass(slots=True, frozen=True)
class UsageSample:
    """Used and total memory, both in kiB."""

    used: int
    total: int

    @property
    def percent(self) -> int:
        """Truncated percentage of total in use, 0 when total is 0."""
        if self.total == 0:
            return 0
        return 100 * self.used // self.total


@dataclass(slots=True, frozen=True)
class BrightnessSample:
    """Current and maximum backlight brightness."""

    current: float
    maximum: float

    @property
    def percent(self) -> float | None:
        """Brightness as a percentage of the maximum, None when the maximum is 0."""
        if self.maximum == 0:
            return None
        return (self.current / self.maximum) * 100
