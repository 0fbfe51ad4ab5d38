from __future__ import annotations

import fnmatch
import logging
import os
import shutil
import stat
import subprocess
import threading
import time
from typing import Iterable, cast

from reclaim_toolkit.collectors.walker import FilesystemWalker
from reclaim_toolkit.errors import ActionFailed, ScanRootInaccessible
from reclaim_toolkit.models.cleanup import (
    ActionKind,
    ActionOutcome,
    CleanupAction,
    CleanupReport,
    CommandSpec,
    DeletionStats,
    PathSet,
    ServiceSpec,
    ServiceState,
)
from reclaim_toolkit.services.command_service import (
    CommandRunner,
    ServiceController,
    SystemServiceController,
    run_command,
)

logger = logging.getLogger(__name__)


class CleanupActionRunner:
    """Executes cleanup actions strictly in order, each one isolated.

    A failure inside one action is recorded on that action and the runner
    moves on; nothing raised by an action escapes run().
    """

    def __init__(
        self,
        command_runner: CommandRunner = run_command,
        service_controller: ServiceController | None = None,
        dry_run: bool = False,
        retry_in_use: bool = True,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.command_runner = command_runner
        self.service_controller = service_controller or SystemServiceController(command_runner)
        self.dry_run = bool(dry_run)
        self.retry_in_use = bool(retry_in_use)
        self.cancel_event = cancel_event

    def run(self, actions: Iterable[CleanupAction]) -> CleanupReport:
        actions = list(actions)
        for i, action in enumerate(actions):
            if action.executed:
                logger.warning("action %r already ran (%s); not re-running", action.name, action.outcome.value)
                continue
            if self.cancel_event is not None and self.cancel_event.is_set():
                for rest in actions[i:]:
                    if not rest.executed:
                        rest.record(ActionOutcome.CANCELLED, "run cancelled")
                logger.info("cleanup cancelled before %r", action.name)
                break
            self._run_one(action)
        return CleanupReport(actions=actions)

    def _run_one(self, action: CleanupAction) -> None:
        logger.info("action %r (%s) started", action.name, action.kind.value)
        try:
            if action.kind == ActionKind.PATH_DELETION:
                self._delete_paths(action)
            elif action.kind == ActionKind.EXTERNAL_COMMAND:
                self._run_command(action)
            else:
                self._toggle_service(action)
        except ActionFailed as e:
            action.record(ActionOutcome.FAILED, e.reason)
        except Exception as e:  # noqa: BLE001
            logger.exception("action %r raised", action.name)
            action.record(ActionOutcome.FAILED, f"{type(e).__name__}: {e}")

        if action.outcome == ActionOutcome.FAILED:
            logger.warning("action %r failed: %s", action.name, action.reason)
        else:
            logger.info(
                "action %r %s%s",
                action.name,
                action.outcome.value if action.outcome else "-",
                f" ({action.reason})" if action.reason else "",
            )

    # -- path deletion ---------------------------------------------------

    def _delete_paths(self, action: CleanupAction) -> None:
        ps = cast(PathSet, action.target)
        existing = [p for p in ps.paths if os.path.lexists(p)]
        if not existing:
            action.record(ActionOutcome.SKIPPED_NOT_FOUND, "no target path exists")
            return

        stats = action.stats
        unlistable: list[str] = []
        for p in existing:
            if ps.contents_only and os.path.isdir(p) and not os.path.islink(p):
                try:
                    entries = _select_entries(p, ps, stats)
                except OSError as e:
                    unlistable.append(f"{p}: {e.strerror or e}")
                    continue
                for entry in entries:
                    self._remove_entry(entry, stats)
            else:
                self._remove_entry(p, stats)

        if stats.retried:
            logger.info("%r: %d entries removed after an in-use retry", action.name, stats.retried)
        if stats.kept:
            logger.info("%r: %d entries kept by filters", action.name, stats.kept)

        if stats.removed == 0 and unlistable:
            raise ActionFailed("cannot list " + "; ".join(unlistable))
        if stats.removed == 0 and stats.failed:
            raise ActionFailed(f"none of {stats.failed} entries could be removed")

        notes: list[str] = []
        if self.dry_run:
            notes.append("dry run")
        if stats.failed:
            notes.append(f"{stats.failed} entries left in place")
        if unlistable:
            notes.append("cannot list " + "; ".join(unlistable))
        action.record(ActionOutcome.SUCCEEDED, ", ".join(notes) or None)

    def _remove_entry(self, path: str, stats: DeletionStats) -> None:
        size = _entry_size(path)
        if self.dry_run:
            stats.removed += 1
            stats.bytes_freed += size
            return

        try:
            _remove(path)
        except FileNotFoundError:
            return
        except PermissionError as e:
            if not self.retry_in_use:
                self._entry_failed(path, e, stats)
                return
            try:
                _make_writable(path)
                _remove(path)
            except FileNotFoundError:
                return
            except OSError as e2:
                self._entry_failed(path, e2, stats)
                return
            stats.retried += 1
            logger.debug("removed %s after retry", path)
        except OSError as e:
            self._entry_failed(path, e, stats)
            return

        stats.removed += 1
        stats.bytes_freed += size

    @staticmethod
    def _entry_failed(path: str, exc: OSError, stats: DeletionStats) -> None:
        stats.failed += 1
        if len(stats.failed_paths) < 20:
            stats.failed_paths.append(path)
        logger.debug("cannot remove %s: %s", path, exc)

    # -- external command ------------------------------------------------

    def _run_command(self, action: CleanupAction) -> None:
        spec = cast(CommandSpec, action.target)
        if self.dry_run:
            action.record(ActionOutcome.SUCCEEDED, f"dry run: would run {spec.display()}")
            return

        try:
            res = self.command_runner(spec.argv)
        except (OSError, subprocess.SubprocessError) as e:
            raise ActionFailed(f"launch failed: {e}") from e

        if res.returncode not in spec.ok_exit_codes:
            raise ActionFailed(f"exit status {res.returncode}")
        action.record(ActionOutcome.SUCCEEDED)

    # -- service toggle --------------------------------------------------

    def _toggle_service(self, action: CleanupAction) -> None:
        spec = cast(ServiceSpec, action.target)
        current = self.service_controller.state(spec.service)
        if current == spec.state:
            action.record(ActionOutcome.SUCCEEDED, f"already {spec.state.value}")
            return
        if self.dry_run:
            action.record(ActionOutcome.SUCCEEDED, f"dry run: would set {spec.service} {spec.state.value}")
            return

        if spec.state == ServiceState.STOPPED:
            self.service_controller.stop(spec.service)
        else:
            self.service_controller.start(spec.service)
        action.record(ActionOutcome.SUCCEEDED)


def _matches(name: str, patterns: tuple[str, ...]) -> bool:
    return any(fnmatch.fnmatch(name, pat) for pat in patterns)


def _select_entries(directory: str, ps: PathSet, stats: DeletionStats) -> list[str]:
    """Children of directory that ps allows to be removed; the rest are counted as kept."""
    cutoff = time.time() - ps.min_age_days * 86400 if ps.min_age_days > 0 else None
    selected: list[str] = []
    with os.scandir(directory) as it:
        for entry in it:
            if not _matches(entry.name, ps.patterns):
                continue
            if _matches(entry.name, ps.exclude) or (ps.skip_hidden and entry.name.startswith(".")):
                stats.kept += 1
                continue
            try:
                st = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            # sockets, fifos and device nodes belong to running programs
            if not (stat.S_ISREG(st.st_mode) or stat.S_ISDIR(st.st_mode) or stat.S_ISLNK(st.st_mode)):
                stats.kept += 1
                continue
            if cutoff is not None and st.st_mtime > cutoff:
                stats.kept += 1
                continue
            selected.append(entry.path)
    selected.sort()
    return selected


def _remove(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)


def _make_writable(path: str) -> None:
    try:
        os.chmod(path, stat.S_IWRITE | stat.S_IREAD)
    except OSError:
        pass


def _entry_size(path: str) -> int:
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            return sum(f.size_bytes for f in FilesystemWalker().walk(path))
        return int(os.lstat(path).st_size)
    except (OSError, ScanRootInaccessible):
        return 0
