from __future__ import annotations

import dataclasses
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from reclaim_toolkit.collectors.walker import OnError, WalkPolicy
from reclaim_toolkit.models.common import GIB


def default_profile_root() -> str:
    if os.name == "nt":
        drive = os.environ.get("SystemDrive", "C:").rstrip("\\")
        return drive + "\\Users"
    if os.path.isdir("/home"):
        return "/home"
    return str(Path.home())


def default_system_temp() -> str:
    if os.name == "nt":
        windir = os.environ.get("WINDIR") or os.environ.get("SYSTEMROOT") or r"C:\Windows"
        return os.path.join(windir, "Temp")
    return tempfile.gettempdir()


def default_scan_roots() -> list[str]:
    roots = [default_profile_root()]
    tmp = default_system_temp()
    if tmp not in roots:
        roots.append(tmp)
    return roots


def default_state_dir() -> Path:
    xdg = os.environ.get("XDG_STATE_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "state"
    return base / "reclaim_toolkit"


@dataclass(frozen=True)
class ReclaimConfig:
    """Every setting a run needs, resolved once and passed to each component."""

    target_volume: str | None = None
    scan_roots: list[str] = field(default_factory=default_scan_roots)
    aggregate_roots: list[str] | None = None
    large_file_threshold_bytes: int = GIB
    follow_symlinks: bool = False
    on_error: OnError = OnError.CONTINUE
    max_recorded_errors: int = 20
    workers: int = 1
    cleanup: bool = True
    dry_run: bool = False
    retry_in_use: bool = True
    skip_actions: list[str] = field(default_factory=list)
    relocate: bool = False
    relocation_subfolder: str = "LargeFiles"
    candidate_volumes: list[str] | None = None
    export_dir: str = field(default_factory=lambda: str(Path.home() / "reclaim_reports"))
    log_path: str = field(default_factory=lambda: str(default_state_dir() / "reclaim.log"))
    log_max_bytes: int = 10 * 1024 * 1024
    log_keep_archives: int = 5

    @property
    def walk_policy(self) -> WalkPolicy:
        return WalkPolicy(
            follow_symlinks=self.follow_symlinks,
            on_error=self.on_error,
            max_recorded_errors=self.max_recorded_errors,
        )

    @property
    def effective_aggregate_roots(self) -> list[str]:
        return list(self.aggregate_roots) if self.aggregate_roots else list(self.scan_roots)

    @classmethod
    def from_dict(cls, raw: dict[str, Any], base: "ReclaimConfig | None" = None) -> "ReclaimConfig":
        """Overlay known keys from raw onto base (or the defaults). Unknown keys are ignored."""
        cfg = base or cls()
        known = {f.name: f for f in dataclasses.fields(cls)}
        changes: dict[str, Any] = {}
        for key, value in raw.items():
            if key not in known or value is None:
                continue
            try:
                changes[key] = _coerce(key, value, getattr(cfg, key))
            except (TypeError, ValueError) as e:
                raise ValueError(f"invalid config value for {key!r}: {value!r}") from e
        cfg = dataclasses.replace(cfg, **changes)
        if not cfg.scan_roots:
            raise ValueError("invalid config value for 'scan_roots': at least one root is required")
        if cfg.large_file_threshold_bytes < 0:
            raise ValueError("invalid config value for 'large_file_threshold_bytes': must be >= 0")
        return cfg

    def to_dict(self) -> dict[str, Any]:
        out = dataclasses.asdict(self)
        out["on_error"] = self.on_error.value
        return out


def _coerce(key: str, value: Any, current: Any) -> Any:
    if key == "on_error":
        return OnError(str(value).lower())
    if key in ("aggregate_roots", "candidate_volumes", "scan_roots", "skip_actions"):
        if isinstance(value, str):
            return [value]
        if not isinstance(value, (list, tuple)):
            raise TypeError(key)
        return [str(v) for v in value]
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if isinstance(current, int):
        return int(value)
    return str(value)
