from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Callable, Protocol, Sequence

import psutil

from reclaim_toolkit.errors import ActionFailed
from reclaim_toolkit.models.cleanup import ServiceState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


CommandRunner = Callable[[Sequence[str]], CommandResult]


def run_command(argv: Sequence[str], timeout: float | None = 3600) -> CommandResult:
    """Run argv without a shell. Output is captured for the log only."""
    logger.debug("exec: %s", " ".join(argv))
    proc = subprocess.run(
        list(argv),
        capture_output=True,
        text=True,
        errors="replace",
        timeout=timeout,
        check=False,
    )
    if proc.returncode != 0:
        logger.debug("exit %s from %s: %s", proc.returncode, argv[0], (proc.stderr or "").strip()[:500])
    return CommandResult(returncode=proc.returncode, stdout=proc.stdout or "", stderr=proc.stderr or "")


class ServiceController(Protocol):
    def state(self, service: str) -> ServiceState: ...

    def stop(self, service: str) -> None: ...

    def start(self, service: str) -> None: ...


class SystemServiceController:
    """Windows services through net.exe, systemd units elsewhere."""

    def __init__(self, command_runner: CommandRunner = run_command) -> None:
        self._run = command_runner

    def state(self, service: str) -> ServiceState:
        if os.name == "nt":
            try:
                status = psutil.win_service_get(service).status()
            except (psutil.Error, OSError, AttributeError) as e:
                logger.debug("cannot query service %s: %s", service, e)
                return ServiceState.UNKNOWN
            if status == "running":
                return ServiceState.RUNNING
            if status == "stopped":
                return ServiceState.STOPPED
            return ServiceState.UNKNOWN

        if shutil.which("systemctl") is None:
            return ServiceState.UNKNOWN
        try:
            res = self._run(["systemctl", "is-active", service])
        except (OSError, subprocess.SubprocessError):
            return ServiceState.UNKNOWN
        out = res.stdout.strip()
        if out == "active":
            return ServiceState.RUNNING
        if out in ("inactive", "failed"):
            return ServiceState.STOPPED
        return ServiceState.UNKNOWN

    def stop(self, service: str) -> None:
        self._toggle("stop", service)

    def start(self, service: str) -> None:
        self._toggle("start", service)

    def _toggle(self, verb: str, service: str) -> None:
        if os.name == "nt":
            argv = ["net", verb, service]
        else:
            argv = ["systemctl", verb, service]
        try:
            res = self._run(argv)
        except (OSError, subprocess.SubprocessError) as e:
            raise ActionFailed(f"{' '.join(argv)}: launch failed: {e}") from e
        if not res.success:
            detail = res.stderr.strip() or res.stdout.strip()
            raise ActionFailed(f"{' '.join(argv)}: exit status {res.returncode}" + (f": {detail[:200]}" if detail else ""))
