from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from reclaim_toolkit.models.cleanup import ActionOutcome, CleanupReport
from reclaim_toolkit.models.filesystem import DirectorySizeReport, LargeFileReport, UsageReport
from reclaim_toolkit.models.relocation import RelocationOutcome, RelocationReport


@dataclass(frozen=True)
class CategorySummary:
    category: str
    ok: int
    skipped: int
    failed: int


@dataclass
class RunReport:
    started_at: datetime
    finished_at: datetime | None = None
    usage_before: UsageReport | None = None
    cleanup: CleanupReport | None = None
    large_files: LargeFileReport | None = None
    directories: DirectorySizeReport | None = None
    relocation: RelocationReport | None = None
    usage_after: UsageReport | None = None
    fatal: str | None = None
    notes: list[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        if self.fatal:
            return "FATAL"
        if any(c.failed for c in self.summary()):
            return "WARN"
        return "OK"

    def freed_bytes(self, volume_id: str) -> int | None:
        if self.usage_before is None or self.usage_after is None:
            return None
        before = self.usage_before.get(volume_id)
        after = self.usage_after.get(volume_id)
        if before is None or after is None:
            return None
        return after.free_bytes - before.free_bytes

    def summary(self) -> list[CategorySummary]:
        rows: list[CategorySummary] = []

        failed_volumes = 0
        sampled = 0
        for u in (self.usage_before, self.usage_after):
            if u is None:
                continue
            sampled += len(u.samples)
            failed_volumes += len(u.failed)
        rows.append(CategorySummary("volumes", ok=sampled, skipped=0, failed=failed_volumes))

        if self.cleanup is not None:
            c = self.cleanup
            rows.append(
                CategorySummary(
                    "actions",
                    ok=c.count(ActionOutcome.SUCCEEDED),
                    skipped=c.count(ActionOutcome.SKIPPED_NOT_FOUND) + c.count(ActionOutcome.CANCELLED),
                    failed=c.count(ActionOutcome.FAILED),
                )
            )
            rows.append(
                CategorySummary(
                    "deleted entries",
                    ok=sum(a.stats.removed for a in c.actions),
                    skipped=0,
                    failed=sum(a.stats.failed for a in c.actions),
                )
            )

        traversal_failed = 0
        traversal_ok = 0
        if self.large_files is not None:
            traversal_failed += self.large_files.errors.count
            traversal_ok += len(self.large_files.records)
        if self.directories is not None:
            traversal_failed += self.directories.errors.count
            traversal_ok += len(self.directories.records) - self.directories.partial_count
        if self.large_files is not None or self.directories is not None:
            rows.append(CategorySummary("traversal", ok=traversal_ok, skipped=0, failed=traversal_failed))

        if self.relocation is not None:
            r = self.relocation
            rows.append(
                CategorySummary(
                    "relocation",
                    ok=r.count(RelocationOutcome.MOVED),
                    skipped=r.count(RelocationOutcome.SKIPPED_NOT_FOUND),
                    failed=r.count(RelocationOutcome.FAILED),
                )
            )
        return rows
