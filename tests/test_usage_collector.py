"""
Tests for reclaim_toolkit/collectors/usage_collector.py.
"""

from collections import namedtuple
from datetime import datetime
from unittest.mock import patch

import pytest

from reclaim_toolkit.collectors.usage_collector import UsageReporter, system_volume
from reclaim_toolkit.models.filesystem import VolumeUsageSample

GB = 1000**3
Partition = namedtuple("Partition", ["device", "mountpoint", "fstype", "opts"])


class TestSample:
    def test_percentages_rounded_to_two_decimals(self, fake_disk_usage):
        fake_disk_usage.add("C:\\", total=100 * GB, free=10 * GB)
        report = UsageReporter(disk_usage=fake_disk_usage).sample(["C:\\"])

        s = report.samples[0]
        assert s.volume_id == "C:\\"
        assert s.used_bytes == 90 * GB
        assert s.used_percent == 90.00
        assert s.free_percent == 10.00
        assert report.failed == []

    def test_one_per_volume_in_order(self, fake_disk_usage):
        fake_disk_usage.add("/", total=300, free=100)
        fake_disk_usage.add("/data", total=1000, free=1)
        report = UsageReporter(disk_usage=fake_disk_usage).sample(["/data", "/", "/data"])
        assert [s.volume_id for s in report.samples] == ["/data", "/"]
        assert report.get("/").used_percent == 66.67

    def test_unavailable_volume_is_partial_failure(self, fake_disk_usage):
        fake_disk_usage.add("/", total=100, free=50)
        report = UsageReporter(disk_usage=fake_disk_usage).sample(["Z:\\", "/"])

        assert [s.volume_id for s in report.samples] == ["/"]
        assert [f.volume_id for f in report.failed] == ["Z:\\"]

    def test_free_clamped_to_total(self):
        Usage = namedtuple("Usage", ["total", "used", "free", "percent"])
        reporter = UsageReporter(disk_usage=lambda _p: Usage(100, 0, 120, 0.0))
        s = reporter.sample(["/"]).samples[0]
        assert s.free_bytes == 100

    def test_sample_time_comes_from_clock(self, fake_disk_usage):
        fake_disk_usage.add("/", total=1, free=1)
        when = datetime(2026, 1, 2, 3, 4, 5)
        s = UsageReporter(disk_usage=fake_disk_usage, clock=lambda: when).sample(["/"]).samples[0]
        assert s.sampled_at == when


class TestVolumeUsageSample:
    def test_invariant_enforced(self):
        with pytest.raises(ValueError):
            VolumeUsageSample("x", total_bytes=10, free_bytes=11, sampled_at=datetime.now())
        with pytest.raises(ValueError):
            VolumeUsageSample("x", total_bytes=10, free_bytes=-1, sampled_at=datetime.now())

    def test_zero_capacity(self):
        s = VolumeUsageSample("x", total_bytes=0, free_bytes=0, sampled_at=datetime.now())
        assert s.used_percent == 0.0
        assert s.free_percent == 0.0


class TestVolumes:
    def test_list_and_candidates_keep_platform_order(self):
        parts = [
            Partition("/dev/sda1", "/", "ext4", "rw"),
            Partition("/dev/sdb1", "/mnt/data", "ext4", "rw"),
            Partition("/dev/sdc1", "/mnt/backup", "xfs", "rw"),
        ]
        reporter = UsageReporter(disk_partitions=lambda all=False: parts)
        assert reporter.list_volumes() == ["/", "/mnt/data", "/mnt/backup"]
        assert reporter.candidate_volumes("/") == ["/mnt/data", "/mnt/backup"]

    def test_partition_failure_gives_no_candidates(self):
        def boom(all=False):
            raise OSError("nope")

        assert UsageReporter(disk_partitions=boom).list_volumes() == []


def test_system_volume_posix():
    with patch("reclaim_toolkit.collectors.usage_collector.os.name", "posix"):
        assert system_volume() == "/"
