from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Any, Callable, Iterable

import psutil

from reclaim_toolkit.errors import VolumeUnavailable
from reclaim_toolkit.models.filesystem import UsageReport, VolumeUsageSample

logger = logging.getLogger(__name__)


def system_volume() -> str:
    if os.name == "nt":
        return os.environ.get("SystemDrive", "C:").rstrip("\\") + "\\"
    return "/"


class UsageReporter:
    def __init__(
        self,
        disk_usage: Callable[[str], Any] = psutil.disk_usage,
        disk_partitions: Callable[..., Any] = psutil.disk_partitions,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._disk_usage = disk_usage
        self._disk_partitions = disk_partitions
        self._clock = clock

    def sample(self, volume_ids: Iterable[str]) -> UsageReport:
        samples: list[VolumeUsageSample] = []
        failed: list[VolumeUnavailable] = []
        seen: set[str] = set()

        for vid in volume_ids:
            if vid in seen:
                continue
            seen.add(vid)
            try:
                u = self._disk_usage(vid)
                total = int(u.total)
                # Reserved blocks make used + free < total on some filesystems.
                free = min(max(int(u.free), 0), total)
                samples.append(
                    VolumeUsageSample(
                        volume_id=vid,
                        total_bytes=total,
                        free_bytes=free,
                        sampled_at=self._clock(),
                    )
                )
            except (OSError, ValueError) as e:
                logger.warning("cannot query volume %s: %s", vid, e)
                failed.append(VolumeUnavailable(vid, str(e)))

        return UsageReport(samples=samples, failed=failed)

    def list_volumes(self) -> list[str]:
        rows: list[str] = []
        try:
            parts = self._disk_partitions(all=False)
        except OSError as e:
            logger.warning("cannot enumerate partitions: %s", e)
            return rows
        for p in parts:
            mp = str(p.mountpoint)
            if mp and mp not in rows:
                rows.append(mp)
        return rows

    def candidate_volumes(self, source_volume: str) -> list[str]:
        src = os.path.normcase(source_volume)
        return [v for v in self.list_volumes() if os.path.normcase(v) != src]
