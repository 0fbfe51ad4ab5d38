from __future__ import annotations

import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Sequence

from reclaim_toolkit.errors import RelocationFailed
from reclaim_toolkit.models.filesystem import LargeFileRecord
from reclaim_toolkit.models.relocation import (
    RelocationOutcome,
    RelocationPlan,
    RelocationReport,
    RelocationResult,
)

logger = logging.getLogger(__name__)

DEFAULT_SUBFOLDER = "LargeFiles"


class RelocationPlanner:
    def __init__(
        self,
        subfolder: str = DEFAULT_SUBFOLDER,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.subfolder = subfolder
        self.cancel_event = cancel_event

    def plan(
        self,
        files: Sequence[LargeFileRecord],
        candidate_volumes: Sequence[str],
        source_volume: str | None = None,
    ) -> RelocationPlan | None:
        """Pick the first usable candidate in the order given; None if there is nothing to do."""
        if not files or not candidate_volumes:
            return None

        src = _volume_key(source_volume) if source_volume else None
        for vol in candidate_volumes:
            if src is not None and _volume_key(vol) == src:
                continue
            dest = os.path.join(vol, self.subfolder)
            return RelocationPlan(files=list(files), destination_root=dest, volume_id=vol)
        return None

    def execute(self, plan: RelocationPlan) -> RelocationReport:
        results: list[RelocationResult] = []
        dest_root = Path(plan.destination_root)

        for i, rec in enumerate(plan.files):
            if self.cancel_event is not None and self.cancel_event.is_set():
                logger.info("relocation cancelled; %d file(s) not attempted", len(plan.files) - i)
                break
            try:
                results.append(self._move_one(rec, dest_root))
            except RelocationFailed as e:
                logger.warning("relocation failed: %s", e)
                results.append(RelocationResult(record=rec, outcome=RelocationOutcome.FAILED, reason=e.reason))

        moved = sum(1 for r in results if r.outcome == RelocationOutcome.MOVED)
        logger.info("relocated %d/%d file(s) to %s", moved, len(plan.files), dest_root)
        return RelocationReport(plan=plan, results=results)

    def _move_one(self, rec: LargeFileRecord, dest_root: Path) -> RelocationResult:
        src = Path(rec.path)
        if not src.exists():
            return RelocationResult(record=rec, outcome=RelocationOutcome.SKIPPED_NOT_FOUND)

        dest: Path | None = None
        try:
            dest_root.mkdir(parents=True, exist_ok=True)
            dest = _free_name(dest_root / src.name)
            shutil.move(str(src), str(dest))
        except OSError as e:
            if dest is not None and src.exists():
                _discard_partial(dest)
            raise RelocationFailed(rec.path, e.strerror or str(e)) from e

        logger.debug("moved %s -> %s", src, dest)
        return RelocationResult(record=rec, outcome=RelocationOutcome.MOVED, destination=str(dest))


def _volume_key(volume: str) -> str:
    # trailing separators do not change the volume: "C:" is "C:\\", "/mnt/d/" is "/mnt/d"
    return os.path.normcase(os.path.normpath(volume)).rstrip("\\/")


def _discard_partial(dest: Path) -> None:
    """Remove what a failed cross-volume copy left at the destination."""
    try:
        dest.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("cannot remove partial copy %s: %s", dest, e)


def _free_name(p: Path) -> Path:
    if not p.exists():
        return p
    n = 1
    while True:
        cand = p.with_name(f"{p.stem} ({n}){p.suffix}")
        if not cand.exists():
            return cand
        n += 1
