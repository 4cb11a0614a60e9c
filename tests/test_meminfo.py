"""Tests for memory-info parsing and usage formulas."""

import os
import sys

import psutil
import pytest

from barstat.meminfo import (
    MemInfoError,
    MemInfoOpenError,
    MemInfoReadError,
    compute_usage,
    default_meminfo_path,
    parse_meminfo,
    read_meminfo,
    usage_htop,
    usage_procps,
)
from barstat.models import MemInfo, UsageMode, UsageSample

FIXTURE = (
    "MemTotal:     111 kB\n"
    "MemFree:      222 kB\n"
    "MemAvailable: 333 kB\n"
    "Buffers:      444 kB\n"
    "Cached:       555 kB\n"
    "SwapCached:   666 kB\n"
    "SwapTotal:    777 kB\n"
    "SwapFree:     888 kB\n"
    "Shmem:        999 kB\n"
    "SReclaimable: 246 kB\n"
)

FIXTURE_INFO = MemInfo(
    mem_total=111,
    mem_free=222,
    mem_available=333,
    buffers=444,
    cached=555,
    swap_cached=666,
    swap_total=777,
    swap_free=888,
    shmem=999,
    s_reclaimable=246,
)


class TestParseMeminfo:
    """Tests for parse_meminfo."""

    def test_all_labels(self):
        """Test every known label is parsed into its field."""
        assert parse_meminfo(FIXTURE) == FIXTURE_INFO

    def test_order_and_unknown_labels(self):
        """Test label order does not matter and unknown labels are skipped."""
        lines = FIXTURE.splitlines()
        shuffled = "\n".join(
            ["Active:  12 kB", "HugePages_Total: 0"]
            + lines[::-1]
            + ["Dirty: 5 kB"]
        )
        assert parse_meminfo(shuffled) == FIXTURE_INFO

    def test_missing_labels_stay_zero(self):
        """Test absent labels keep their zero default."""
        info = parse_meminfo("MemTotal: 2048 kB\nSwapTotal: 512 kB\n")

        assert info.mem_total == 2048
        assert info.swap_total == 512
        assert info.mem_available == 0
        assert info.s_reclaimable == 0

    def test_empty_text(self):
        """Test empty input yields an all-zero MemInfo."""
        assert parse_meminfo("") == MemInfo()

    def test_malformed_value_is_zero(self):
        """Test a non-numeric value parses as zero."""
        info = parse_meminfo("MemTotal: lots kB\nMemFree: 10 kB\n")
        assert info.mem_total == 0
        assert info.mem_free == 10

    def test_lines_without_colon_are_skipped(self):
        """Test garbage lines do not stop parsing."""
        info = parse_meminfo("garbage\nMemFree: 10 kB\n")
        assert info.mem_free == 10

    def test_first_occurrence_wins(self):
        """Test a repeated label keeps its first value."""
        info = parse_meminfo("MemFree: 10 kB\nMemFree: 20 kB\n")
        assert info.mem_free == 10

    def test_unit_is_not_validated(self):
        """Test values without a unit are accepted."""
        assert parse_meminfo("Shmem: 7").shmem == 7


class TestReadMeminfo:
    """Tests for read_meminfo."""

    def test_reads_file(self, tmp_path):
        """Test reading a fixture file populates every field."""
        path = tmp_path / "meminfo"
        path.write_text(FIXTURE)

        assert read_meminfo(str(path)) == FIXTURE_INFO

    def test_missing_file(self, tmp_path):
        """Test a missing file raises MemInfoOpenError."""
        with pytest.raises(MemInfoOpenError) as excinfo:
            read_meminfo(str(tmp_path / "absent"))

        assert excinfo.value.code == 1
        assert isinstance(excinfo.value, MemInfoError)

    def test_empty_file(self, tmp_path):
        """Test an empty file raises MemInfoReadError."""
        path = tmp_path / "meminfo"
        path.write_text("")

        with pytest.raises(MemInfoReadError) as excinfo:
            read_meminfo(str(path))

        assert excinfo.value.code == 2

    def test_default_path(self):
        """Test the default path lives under psutil's procfs root."""
        assert default_meminfo_path() == os.path.join(psutil.PROCFS_PATH, "meminfo")

    @pytest.mark.skipif(not sys.platform.startswith("linux"), reason="needs /proc/meminfo")
    def test_live_system(self):
        """Test the live memory total matches what psutil reports."""
        info = read_meminfo()

        assert info.mem_total > 0
        assert info.mem_total == psutil.virtual_memory().total // 1024


class TestUsageProcps:
    """Tests for the procps formula."""

    def test_swap(self):
        """Test swap used is total minus free."""
        info = MemInfo(swap_total=1000, swap_free=300, swap_cached=50)
        assert usage_procps(info, swap=True) == UsageSample(used=700, total=1000)

    def test_ram(self):
        """Test ram used is total minus available."""
        info = MemInfo(mem_total=1000, mem_free=100, mem_available=400)
        assert usage_procps(info) == UsageSample(used=600, total=1000)

    def test_zero_available_uses_free(self):
        """Test free substitutes for a zero available count."""
        info = MemInfo(mem_total=1000, mem_free=250, mem_available=0)
        assert usage_procps(info) == UsageSample(used=750, total=1000)

    def test_available_above_total_uses_free(self):
        """Test free substitutes for an available count above total."""
        info = MemInfo(mem_total=1000, mem_free=250, mem_available=5000)
        assert usage_procps(info) == UsageSample(used=750, total=1000)

    def test_never_negative(self):
        """Test inconsistent counters do not produce negative usage."""
        info = MemInfo(mem_total=100, mem_free=500, mem_available=0)
        assert usage_procps(info).used == 0

    def test_fixture(self):
        """Test the reference fixture (available > total falls back to free)."""
        assert usage_procps(FIXTURE_INFO) == UsageSample(used=0, total=111)
        assert usage_procps(FIXTURE_INFO, swap=True) == UsageSample(used=0, total=777)


class TestUsageHtop:
    """Tests for the htop formula."""

    def test_swap(self):
        """Test swap cache is not counted as used."""
        info = MemInfo(swap_total=1000, swap_free=300, swap_cached=50)
        assert usage_htop(info, swap=True) == UsageSample(used=650, total=1000)

    def test_ram(self):
        """Test ram used excludes free, cache, slab and buffers but adds shmem."""
        info = MemInfo(
            mem_total=10000,
            mem_free=1000,
            cached=3000,
            s_reclaimable=500,
            buffers=500,
            shmem=200,
        )
        assert usage_htop(info) == UsageSample(used=5200, total=10000)

    def test_ram_fallback(self):
        """Test only free is subtracted when the sum exceeds total."""
        info = MemInfo(mem_total=1000, mem_free=100, cached=2000, shmem=50)
        assert usage_htop(info) == UsageSample(used=950, total=1000)

    def test_fixture(self):
        """Test the reference fixture takes the fallback branch."""
        # 111 < 222 + 555 + 246 + 444, so used = 111 - 222 + 999
        assert usage_htop(FIXTURE_INFO) == UsageSample(used=888, total=111)


class TestComputeUsage:
    """Tests for compute_usage dispatch."""

    INFO = MemInfo(
        mem_total=8000,
        mem_free=1000,
        mem_available=5000,
        buffers=200,
        cached=2000,
        swap_total=4000,
        swap_free=3000,
        swap_cached=100,
        shmem=300,
        s_reclaimable=400,
    )

    def test_htop_mode(self):
        """Test HTOP mode uses the htop formula."""
        assert compute_usage(self.INFO, UsageMode.HTOP) == usage_htop(self.INFO)
        assert compute_usage(self.INFO, UsageMode.HTOP, swap=True) == usage_htop(
            self.INFO, swap=True
        )

    def test_procps_mode(self):
        """Test PROCPS mode uses the procps formula."""
        assert compute_usage(self.INFO, UsageMode.PROCPS) == usage_procps(self.INFO)
        assert compute_usage(self.INFO, UsageMode.PROCPS, swap=True) == usage_procps(
            self.INFO, swap=True
        )

    def test_formulas_differ(self):
        """Test both conventions are consistent but not identical."""
        htop = compute_usage(self.INFO, UsageMode.HTOP)
        procps = compute_usage(self.INFO, UsageMode.PROCPS)

        assert htop != procps
        for sample in (htop, procps):
            assert 0 <= sample.used <= sample.total
