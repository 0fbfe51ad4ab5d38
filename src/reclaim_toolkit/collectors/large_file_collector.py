from __future__ import annotations

import logging
import os
import threading
from typing import Iterable

from reclaim_toolkit.collectors.walker import ErrorAccumulator, FilesystemWalker, WalkPolicy, distinct_roots
from reclaim_toolkit.errors import ScanRootInaccessible, WalkAborted
from reclaim_toolkit.models.common import GIB
from reclaim_toolkit.models.filesystem import LargeFileRecord, LargeFileReport

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD_BYTES = GIB


class LargeFileScanner:
    def __init__(
        self,
        policy: WalkPolicy | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.policy = policy or WalkPolicy()
        self.cancel_event = cancel_event

    def scan(self, root: str | os.PathLike[str], threshold_bytes: int = DEFAULT_THRESHOLD_BYTES) -> LargeFileReport:
        return self.scan_many([os.fspath(root)], threshold_bytes)

    def scan_many(self, roots: Iterable[str], threshold_bytes: int = DEFAULT_THRESHOLD_BYTES) -> LargeFileReport:
        """Scan every root; only the first one being unlistable is fatal.

        A root inside an earlier root is not walked again, so each file is
        reported at most once.
        """
        roots = distinct_roots(roots)
        threshold = int(threshold_bytes)
        errors = ErrorAccumulator(self.policy.max_recorded_errors)
        walker = FilesystemWalker(self.policy, errors=errors, cancel_event=self.cancel_event)

        hits: list[LargeFileRecord] = []
        seen: set[str] = set()
        aborted = False
        for i, root in enumerate(roots):
            try:
                for entry in walker.walk(root):
                    if entry.size_bytes > threshold and entry.path not in seen:
                        seen.add(entry.path)
                        hits.append(LargeFileRecord(path=entry.path, size_bytes=entry.size_bytes))
            except ScanRootInaccessible as e:
                if i == 0:
                    raise
                errors.record(root, e)
                logger.warning("skipping scan root %s: %s", root, e.reason)
            except WalkAborted as e:
                logger.warning("large file scan aborted at %s: %s", e.path, e.reason)
                aborted = True
                break

        hits.sort(key=lambda r: (-r.size_bytes, r.path))
        logger.info("large file scan: %d files over %d bytes in %d root(s)", len(hits), threshold, len(roots))
        return LargeFileReport(
            roots=roots,
            threshold_bytes=threshold,
            records=hits,
            errors=errors.snapshot(),
            aborted=aborted,
        )
