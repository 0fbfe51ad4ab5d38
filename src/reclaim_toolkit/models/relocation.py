from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from reclaim_toolkit.models.filesystem import LargeFileRecord


class RelocationOutcome(str, Enum):
    MOVED = "moved"
    SKIPPED_NOT_FOUND = "skipped_not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class RelocationPlan:
    files: list[LargeFileRecord]
    destination_root: str
    volume_id: str


@dataclass(frozen=True)
class RelocationResult:
    record: LargeFileRecord
    outcome: RelocationOutcome
    destination: str | None = None
    reason: str | None = None


@dataclass(frozen=True)
class RelocationReport:
    plan: RelocationPlan
    results: list[RelocationResult]

    def count(self, outcome: RelocationOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def bytes_moved(self) -> int:
        return sum(r.record.size_bytes for r in self.results if r.outcome == RelocationOutcome.MOVED)
