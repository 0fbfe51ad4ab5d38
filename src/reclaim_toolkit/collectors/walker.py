from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from reclaim_toolkit.errors import ScanRootInaccessible, WalkAborted
from reclaim_toolkit.models.filesystem import DirectoryListing, FileEntry, TraversalErrors

logger = logging.getLogger(__name__)


class OnError(str, Enum):
    CONTINUE = "continue"
    ABORT = "abort"


@dataclass(frozen=True)
class WalkPolicy:
    follow_symlinks: bool = False
    on_error: OnError = OnError.CONTINUE
    max_recorded_errors: int = 20


def distinct_roots(roots: Iterable[str | os.PathLike[str]]) -> list[str]:
    """Roots in the given order, minus any root equal to or inside an earlier one."""
    kept: list[str] = []
    prefixes: list[str] = []
    for root in roots:
        path = os.fspath(root)
        key = os.path.normcase(os.path.abspath(path))
        if any(key == p.rstrip(os.sep) or key.startswith(p) for p in prefixes):
            logger.debug("scan root %s is already covered by an earlier root", path)
            continue
        kept.append(path)
        prefixes.append(key.rstrip(os.sep) + os.sep)
    return kept


class ErrorAccumulator:
    """Thread-safe count of traversal errors plus the first few offending paths."""

    def __init__(self, max_paths: int = 20) -> None:
        self.max_paths = int(max_paths)
        self._lock = threading.Lock()
        self._count = 0
        self._paths: list[str] = []

    def record(self, path: str, exc: BaseException) -> None:
        with self._lock:
            self._count += 1
            if len(self._paths) < self.max_paths:
                self._paths.append(path)
        logger.debug("traversal error at %s: %s", path, exc)

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def snapshot(self) -> TraversalErrors:
        with self._lock:
            return TraversalErrors(count=self._count, sample_paths=list(self._paths))


class FilesystemWalker:
    """Depth-first, single-pass traversal that never holds the whole tree.

    Directories are listed one at a time with os.scandir; only the pending
    stack of subdirectory paths is kept in memory.
    """

    def __init__(
        self,
        policy: WalkPolicy | None = None,
        errors: ErrorAccumulator | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.policy = policy or WalkPolicy()
        self.errors = errors or ErrorAccumulator(self.policy.max_recorded_errors)
        self.cancel_event = cancel_event

    def walk(self, root: str | os.PathLike[str]) -> Iterator[FileEntry]:
        for listing in self.iter_directories(root):
            yield from listing.files

    def iter_directories(self, root: str | os.PathLike[str]) -> Iterator[DirectoryListing]:
        root_path = os.fspath(root)
        follow = self.policy.follow_symlinks

        try:
            files, subdirs = self.scan_directory(root_path)
        except OSError as e:
            raise ScanRootInaccessible(root_path, str(e)) from e

        visited: set[tuple[int, int]] = set()
        if follow:
            key = self._dir_key(root_path)
            if key is not None:
                visited.add(key)

        yield DirectoryListing(path=root_path, parent=None, files=files)

        stack: list[tuple[str, str]] = [(d, root_path) for d in reversed(subdirs)]
        while stack:
            if self.cancel_event is not None and self.cancel_event.is_set():
                logger.info("walk of %s cancelled", root_path)
                return

            path, parent = stack.pop()
            if follow:
                key = self._dir_key(path)
                if key is not None:
                    if key in visited:
                        continue
                    visited.add(key)

            try:
                files, subdirs = self.scan_directory(path)
            except OSError as e:
                self._fail(path, e)
                yield DirectoryListing(path=path, parent=parent, files=[], readable=False)
                continue

            yield DirectoryListing(path=path, parent=parent, files=files)
            stack.extend((d, path) for d in reversed(subdirs))

    def scan_directory(self, path: str) -> tuple[list[FileEntry], list[str]]:
        follow = self.policy.follow_symlinks
        files: list[FileEntry] = []
        subdirs: list[str] = []
        with os.scandir(path) as it:
            for entry in it:
                try:
                    if entry.is_dir(follow_symlinks=follow):
                        subdirs.append(entry.path)
                    elif entry.is_file(follow_symlinks=follow):
                        st = entry.stat(follow_symlinks=follow)
                        files.append(FileEntry(path=entry.path, size_bytes=int(st.st_size)))
                except OSError as e:
                    self._fail(entry.path, e)
        subdirs.sort()
        files.sort(key=lambda f: f.path)
        return files, subdirs

    def _fail(self, path: str, exc: OSError) -> None:
        self.errors.record(path, exc)
        if self.policy.on_error == OnError.ABORT:
            raise WalkAborted(path, str(exc)) from exc

    @staticmethod
    def _dir_key(path: str) -> tuple[int, int] | None:
        try:
            st = os.stat(path)
        except OSError:
            return None
        return (st.st_dev, st.st_ino)
