from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from reclaim_toolkit.errors import VolumeUnavailable
from reclaim_toolkit.models.common import to_gib, to_mib


@dataclass(frozen=True)
class VolumeUsageSample:
    volume_id: str
    total_bytes: int
    free_bytes: int
    sampled_at: datetime

    def __post_init__(self) -> None:
        if not 0 <= self.free_bytes <= self.total_bytes:
            raise ValueError(
                f"free_bytes must be within [0, total_bytes]: {self.free_bytes} / {self.total_bytes}"
            )

    @property
    def used_bytes(self) -> int:
        return self.total_bytes - self.free_bytes

    @property
    def used_percent(self) -> float:
        if self.total_bytes == 0:
            return 0.0
        return round(self.used_bytes * 100 / self.total_bytes, 2)

    @property
    def free_percent(self) -> float:
        if self.total_bytes == 0:
            return 0.0
        return round(self.free_bytes * 100 / self.total_bytes, 2)


@dataclass(frozen=True)
class UsageReport:
    samples: list[VolumeUsageSample]
    failed: list[VolumeUnavailable] = field(default_factory=list)

    def get(self, volume_id: str) -> VolumeUsageSample | None:
        for s in self.samples:
            if s.volume_id == volume_id:
                return s
        return None


@dataclass(frozen=True)
class FileEntry:
    path: str
    size_bytes: int


@dataclass(frozen=True)
class DirectoryListing:
    """One directory as seen by a single scandir pass."""

    path: str
    parent: str | None
    files: list[FileEntry]
    readable: bool = True


@dataclass(frozen=True)
class TraversalErrors:
    count: int
    sample_paths: list[str]


@dataclass(frozen=True)
class LargeFileRecord:
    path: str
    size_bytes: int

    @property
    def size_gib(self) -> float:
        return to_gib(self.size_bytes)


@dataclass(frozen=True)
class LargeFileReport:
    roots: list[str]
    threshold_bytes: int
    records: list[LargeFileRecord]
    errors: TraversalErrors
    aborted: bool = False

    @property
    def total_bytes(self) -> int:
        return sum(r.size_bytes for r in self.records)


@dataclass(frozen=True)
class DirectorySizeRecord:
    path: str
    total_bytes: int
    file_count: int
    partial: bool = False

    @property
    def size_gib(self) -> float:
        return to_gib(self.total_bytes)

    @property
    def size_mib(self) -> float:
        return to_mib(self.total_bytes)


@dataclass(frozen=True)
class DirectorySizeReport:
    roots: list[str]
    records: list[DirectorySizeRecord]
    errors: TraversalErrors

    @property
    def partial_count(self) -> int:
        return sum(1 for r in self.records if r.partial)

    def get(self, path: str) -> DirectorySizeRecord | None:
        for r in self.records:
            if r.path == path:
                return r
        return None
