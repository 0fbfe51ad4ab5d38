"""
Tests for reclaim_toolkit/collectors/walker.py.
"""

import os
import threading
import types

import pytest

from reclaim_toolkit.collectors.walker import (
    ErrorAccumulator,
    FilesystemWalker,
    OnError,
    WalkPolicy,
    distinct_roots,
)
from reclaim_toolkit.errors import ScanRootInaccessible, WalkAborted


class TestWalk:
    def test_yields_every_file_with_size(self, make_tree):
        root = make_tree({"x.bin": 10, "d/y.bin": 20, "d/e/z.bin": 30, "empty/": 0})
        entries = {os.path.relpath(e.path, root): e.size_bytes for e in FilesystemWalker().walk(root)}
        assert entries == {
            "x.bin": 10,
            os.path.join("d", "y.bin"): 20,
            os.path.join("d", "e", "z.bin"): 30,
        }

    def test_is_lazy_generator(self, make_tree):
        root = make_tree({"a": 1})
        it = FilesystemWalker().walk(root)
        assert isinstance(it, types.GeneratorType)
        assert next(it).size_bytes == 1
        with pytest.raises(StopIteration):
            next(it)

    def test_depth_first_preorder(self, make_tree):
        root = make_tree({"a/1": 1, "a/b/2": 1, "c/3": 1})
        order = [os.path.relpath(l.path, root) for l in FilesystemWalker().iter_directories(root)]
        assert order == [".", "a", os.path.join("a", "b"), "c"]

    def test_root_unlistable_raises_scan_root_inaccessible(self, tmp_path):
        with pytest.raises(ScanRootInaccessible):
            list(FilesystemWalker().walk(tmp_path / "missing"))

    def test_root_inaccessible_even_with_abort_policy(self, tmp_path, unreadable):
        unreadable(tmp_path)
        walker = FilesystemWalker(WalkPolicy(on_error=OnError.ABORT))
        with pytest.raises(ScanRootInaccessible):
            list(walker.walk(tmp_path))


class TestErrors:
    def test_unreadable_subdirectory_is_skipped_and_counted(self, make_tree, unreadable):
        root = make_tree({"a/ok.bin": 5, "a/locked/hidden.bin": 100, "b/other.bin": 7})
        unreadable(root / "a" / "locked")

        walker = FilesystemWalker()
        files = list(walker.walk(root))

        assert sorted(f.size_bytes for f in files) == [5, 7]
        assert walker.errors.count >= 1
        assert str(root / "a" / "locked") in walker.errors.snapshot().sample_paths

    def test_abort_policy_ends_sequence(self, make_tree, unreadable):
        root = make_tree({"a/locked/x": 1, "b/y": 2})
        unreadable(root / "a" / "locked")

        walker = FilesystemWalker(WalkPolicy(on_error=OnError.ABORT))
        with pytest.raises(WalkAborted) as exc:
            list(walker.walk(root))
        assert exc.value.path == str(root / "a" / "locked")
        assert walker.errors.count == 1

    def test_unreadable_directory_listing_is_flagged(self, make_tree, unreadable):
        root = make_tree({"locked/x": 1})
        unreadable(root / "locked")
        listings = {l.path: l for l in FilesystemWalker().iter_directories(root)}
        assert listings[str(root / "locked")].readable is False

    def test_accumulator_caps_sample_paths(self):
        acc = ErrorAccumulator(max_paths=2)
        for i in range(5):
            acc.record(f"/p{i}", OSError("x"))
        snap = acc.snapshot()
        assert snap.count == 5
        assert snap.sample_paths == ["/p0", "/p1"]

    def test_accumulator_is_thread_safe(self):
        acc = ErrorAccumulator()

        def hammer():
            for _ in range(1000):
                acc.record("/x", OSError("x"))

        threads = [threading.Thread(target=hammer) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert acc.count == 8000


@pytest.mark.skipif(not hasattr(os, "symlink") or os.name == "nt", reason="needs POSIX symlinks")
class TestSymlinks:
    def test_symlinks_not_followed_by_default(self, make_tree):
        root = make_tree({"real/data": 10})
        os.symlink(root / "real", root / "link")
        os.symlink(root / "real" / "data", root / "filelink")
        files = list(FilesystemWalker().walk(root))
        assert [f.path for f in files] == [str(root / "real" / "data")]

    def test_cycle_terminates_when_following(self, make_tree):
        root = make_tree({"a/f": 3})
        os.symlink(root, root / "a" / "loop")
        walker = FilesystemWalker(WalkPolicy(follow_symlinks=True))
        files = list(walker.walk(root))
        assert [f.size_bytes for f in files] == [3]


def test_cancel_event_stops_between_directories(make_tree):
    root = make_tree({"a/1": 1, "b/2": 1, "c/3": 1})
    ev = threading.Event()
    walker = FilesystemWalker(cancel_event=ev)
    seen = []
    for listing in walker.iter_directories(root):
        seen.append(listing.path)
        ev.set()
    assert seen == [str(root)]


class TestDistinctRoots:
    def test_nested_and_repeated_roots_dropped(self, tmp_path):
        roots = [tmp_path / "home", tmp_path / "home" / "u" / "Temp", tmp_path / "var", tmp_path / "home"]
        assert distinct_roots(roots) == [str(tmp_path / "home"), str(tmp_path / "var")]

    def test_sibling_with_common_prefix_kept(self, tmp_path):
        roots = [tmp_path / "home", tmp_path / "home2"]
        assert distinct_roots(roots) == [str(tmp_path / "home"), str(tmp_path / "home2")]

    def test_trailing_separator_is_same_root(self, tmp_path):
        assert distinct_roots([str(tmp_path), str(tmp_path) + os.sep]) == [str(tmp_path)]
