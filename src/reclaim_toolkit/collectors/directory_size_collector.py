from __future__ import annotations

import dataclasses
import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from reclaim_toolkit.collectors.walker import (
    ErrorAccumulator,
    FilesystemWalker,
    OnError,
    WalkPolicy,
    distinct_roots,
)
from reclaim_toolkit.errors import ScanRootInaccessible
from reclaim_toolkit.models.filesystem import DirectorySizeRecord, DirectorySizeReport

logger = logging.getLogger(__name__)


class _Totals:
    __slots__ = ("size", "count", "partial")

    def __init__(self, size: int = 0, count: int = 0, partial: bool = False) -> None:
        self.size = size
        self.count = count
        self.partial = partial


class DirectorySizeAggregator:
    """Recursive size and file count for every directory under a root.

    One traversal per root: each directory's own files are summed while
    walking, then totals are pushed up to parents in reverse pre-order, so
    the cost is linear in the number of files.
    """

    def __init__(
        self,
        policy: WalkPolicy | None = None,
        workers: int = 1,
        cancel_event: threading.Event | None = None,
    ) -> None:
        # An unreadable directory must never abort aggregation.
        self.policy = dataclasses.replace(policy or WalkPolicy(), on_error=OnError.CONTINUE)
        self.workers = max(1, int(workers))
        self.cancel_event = cancel_event

    def aggregate(self, root: str | os.PathLike[str]) -> DirectorySizeReport:
        return self.aggregate_many([os.fspath(root)])

    def aggregate_many(self, roots: Iterable[str]) -> DirectorySizeReport:
        roots = distinct_roots(roots)
        errors = ErrorAccumulator(self.policy.max_recorded_errors)

        totals: dict[str, _Totals] = {}
        for i, root in enumerate(roots):
            try:
                if self.workers > 1:
                    part = self._aggregate_parallel(root, errors)
                else:
                    part = self._aggregate_tree(root, errors)
            except ScanRootInaccessible as e:
                if i == 0:
                    raise
                errors.record(root, e)
                logger.warning("skipping aggregation root %s: %s", root, e.reason)
                continue
            for path, t in part.items():
                totals.setdefault(path, t)

        records = [
            DirectorySizeRecord(path=p, total_bytes=t.size, file_count=t.count, partial=t.partial)
            for p, t in totals.items()
        ]
        records.sort(key=lambda r: (-r.total_bytes, r.path))
        logger.info("directory aggregation: %d directories under %d root(s)", len(records), len(roots))
        return DirectorySizeReport(roots=roots, records=records, errors=errors.snapshot())

    def _aggregate_tree(self, root: str, errors: ErrorAccumulator) -> dict[str, _Totals]:
        walker = FilesystemWalker(self.policy, errors=errors, cancel_event=self.cancel_event)

        order: list[tuple[str, str | None]] = []
        totals: dict[str, _Totals] = {}
        for listing in walker.iter_directories(root):
            order.append((listing.path, listing.parent))
            totals[listing.path] = _Totals(
                size=sum(f.size_bytes for f in listing.files),
                count=len(listing.files),
                partial=not listing.readable,
            )

        # Pre-order puts every child after its parent.
        for path, parent in reversed(order):
            if parent is None:
                continue
            child = totals[path]
            up = totals[parent]
            up.size += child.size
            up.count += child.count
        return totals

    def _aggregate_parallel(self, root: str, errors: ErrorAccumulator) -> dict[str, _Totals]:
        walker = FilesystemWalker(self.policy, errors=errors, cancel_event=self.cancel_event)
        try:
            files, subdirs = walker.scan_directory(root)
        except OSError as e:
            raise ScanRootInaccessible(root, str(e)) from e

        top = _Totals(size=sum(f.size_bytes for f in files), count=len(files))
        totals: dict[str, _Totals] = {root: top}

        with ThreadPoolExecutor(max_workers=self.workers) as ex:
            futures = [ex.submit(self._aggregate_subtree, sub, errors) for sub in subdirs]
            # Merge in submission order; the final sort makes scheduling irrelevant.
            for sub, fut in zip(subdirs, futures):
                part = fut.result()
                totals.update(part)
                top.size += part[sub].size
                top.count += part[sub].count
        return totals

    def _aggregate_subtree(self, sub: str, errors: ErrorAccumulator) -> dict[str, _Totals]:
        try:
            return self._aggregate_tree(sub, errors)
        except ScanRootInaccessible as e:
            errors.record(sub, e)
            return {sub: _Totals(partial=True)}
