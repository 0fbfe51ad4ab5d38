from __future__ import annotations

import gzip
import logging
import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)

ARCHIVE_DIR = "archives"


@dataclass(frozen=True)
class RotateResult:
    rotated: bool
    archived_path: str | None
    message: str


class LogRotateService:
    """Keeps the run transcript bounded.

    Once the transcript reaches max_bytes it is compressed into
    archives/<name>.<timestamp>.gz next to it and truncated in place; only
    the newest keep_archives archives survive.
    """

    def __init__(self, max_bytes: int = 10 * 1024 * 1024, keep_archives: int = 5) -> None:
        self.max_bytes = int(max_bytes)
        self.keep_archives = max(0, int(keep_archives))

    def rotate_if_needed(self, log_path: str | os.PathLike[str]) -> RotateResult:
        transcript = Path(log_path)
        try:
            size = transcript.stat().st_size
        except FileNotFoundError:
            return RotateResult(False, None, f"log not found: {transcript}")
        except OSError as e:
            return RotateResult(False, None, f"cannot stat {transcript}: {e}")

        if size < self.max_bytes:
            return RotateResult(False, None, "no rotation")

        stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        target = transcript.parent / ARCHIVE_DIR / f"{transcript.name}.{stamp}.gz"
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(transcript, "rb") as src, gzip.open(target, "wb") as dst:
                shutil.copyfileobj(src, dst)
            # truncate only after the archive is complete
            with open(transcript, "wb"):
                pass
        except OSError as e:
            return RotateResult(False, None, f"archiving {transcript} failed: {e}")

        self._prune(target.parent, transcript.name)
        return RotateResult(True, str(target), f"archived {size} bytes")

    def _prune(self, archive_dir: Path, base_name: str) -> None:
        # timestamps sort lexically, newest last
        archives = sorted(archive_dir.glob(f"{base_name}.*.gz"), key=lambda a: a.name)
        stale = archives[: max(0, len(archives) - self.keep_archives)]
        for old in stale:
            try:
                old.unlink()
            except OSError as e:
                logger.debug("cannot prune %s: %s", old, e)
