from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

T = TypeVar("T")

GIB = 1024 * 1024 * 1024
MIB = 1024 * 1024


def to_gib(n: int) -> float:
    return round(n / GIB, 2)


def to_mib(n: int) -> float:
    return round(n / MIB, 2)


@dataclass(frozen=True)
class CollectorResult(Generic[T]):
    ts: datetime
    status: str
    warning_count: int
    data: T
    warnings: list[str] = field(default_factory=list)
