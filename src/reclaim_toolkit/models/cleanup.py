from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class ActionKind(str, Enum):
    PATH_DELETION = "path_deletion"
    EXTERNAL_COMMAND = "external_command"
    SERVICE_TOGGLE = "service_toggle"


class ActionOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    SKIPPED_NOT_FOUND = "skipped_not_found"
    FAILED = "failed"
    CANCELLED = "cancelled"


class ServiceState(str, Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PathSet:
    paths: tuple[str, ...]
    # fnmatch patterns on entry names
    patterns: tuple[str, ...] = ("*",)
    contents_only: bool = True
    exclude: tuple[str, ...] = ()
    # entries modified more recently than this are left alone
    min_age_days: float = 0
    skip_hidden: bool = False


@dataclass(frozen=True)
class CommandSpec:
    argv: tuple[str, ...]
    ok_exit_codes: tuple[int, ...] = (0,)

    def display(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True)
class ServiceSpec:
    service: str
    state: ServiceState


ActionTarget = Union[PathSet, CommandSpec, ServiceSpec]


@dataclass
class DeletionStats:
    removed: int = 0
    failed: int = 0
    retried: int = 0
    kept: int = 0
    bytes_freed: int = 0
    failed_paths: list[str] = field(default_factory=list)


@dataclass
class CleanupAction:
    name: str
    kind: ActionKind
    target: ActionTarget
    outcome: ActionOutcome | None = None
    reason: str | None = None
    stats: DeletionStats = field(default_factory=DeletionStats)

    def __post_init__(self) -> None:
        expected = {
            ActionKind.PATH_DELETION: PathSet,
            ActionKind.EXTERNAL_COMMAND: CommandSpec,
            ActionKind.SERVICE_TOGGLE: ServiceSpec,
        }[self.kind]
        if not isinstance(self.target, expected):
            raise TypeError(f"{self.name}: {self.kind.value} needs a {expected.__name__} target")

    @property
    def executed(self) -> bool:
        return self.outcome is not None

    def record(self, outcome: ActionOutcome, reason: str | None = None) -> None:
        if self.outcome is not None:
            raise RuntimeError(f"outcome already recorded for action {self.name!r}")
        self.outcome = outcome
        self.reason = reason

    @classmethod
    def delete_paths(
        cls,
        name: str,
        *paths: str,
        patterns: tuple[str, ...] = ("*",),
        contents_only: bool = True,
        exclude: tuple[str, ...] = (),
        min_age_days: float = 0,
        skip_hidden: bool = False,
    ) -> "CleanupAction":
        return cls(
            name=name,
            kind=ActionKind.PATH_DELETION,
            target=PathSet(
                paths=tuple(paths),
                patterns=patterns,
                contents_only=contents_only,
                exclude=exclude,
                min_age_days=min_age_days,
                skip_hidden=skip_hidden,
            ),
        )

    @classmethod
    def command(cls, name: str, *argv: str, ok_exit_codes: tuple[int, ...] = (0,)) -> "CleanupAction":
        return cls(
            name=name,
            kind=ActionKind.EXTERNAL_COMMAND,
            target=CommandSpec(argv=tuple(argv), ok_exit_codes=ok_exit_codes),
        )

    @classmethod
    def service(cls, name: str, service: str, state: ServiceState) -> "CleanupAction":
        return cls(
            name=name,
            kind=ActionKind.SERVICE_TOGGLE,
            target=ServiceSpec(service=service, state=state),
        )


@dataclass(frozen=True)
class CleanupReport:
    actions: list[CleanupAction]

    def count(self, outcome: ActionOutcome) -> int:
        return sum(1 for a in self.actions if a.outcome == outcome)

    @property
    def bytes_freed(self) -> int:
        return sum(a.stats.bytes_freed for a in self.actions)
