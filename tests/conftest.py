"""Shared fixtures: synthetic directory trees built from sparse files."""

from __future__ import annotations

import os
from collections import namedtuple
from pathlib import Path

import pytest

MB = 1000 * 1000
GB = 1000 * MB

DiskUsage = namedtuple("DiskUsage", ["total", "used", "free", "percent"])


def make_file(path: Path, size: int) -> Path:
    """Create a file reporting `size` bytes without writing them (sparse)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.truncate(size)
    return path


@pytest.fixture
def make_tree(tmp_path):
    def _make(spec: dict[str, int], base: Path | None = None) -> Path:
        root = base or tmp_path / "tree"
        root.mkdir(parents=True, exist_ok=True)
        for rel, size in spec.items():
            if rel.endswith("/"):
                (root / rel).mkdir(parents=True, exist_ok=True)
            else:
                make_file(root / rel, size)
        return root

    return _make


@pytest.fixture
def scenario_tree(make_tree):
    """/a/f1 (500MB), /a/b/f2 (2GB), /a/b/f3 (200MB)."""
    root = make_tree(
        {
            "a/f1": 500 * MB,
            "a/b/f2": 2 * GB,
            "a/b/f3": 200 * MB,
        }
    )
    return root


@pytest.fixture
def unreadable(monkeypatch):
    """Make os.scandir raise PermissionError for the given paths."""
    blocked: set[str] = set()
    real_scandir = os.scandir

    def fake_scandir(path="."):
        if os.fspath(path) in blocked:
            raise PermissionError(13, "Permission denied", os.fspath(path))
        return real_scandir(path)

    monkeypatch.setattr(os, "scandir", fake_scandir)

    def _block(*paths) -> None:
        blocked.update(os.fspath(p) for p in paths)

    return _block


@pytest.fixture
def fake_disk_usage():
    volumes: dict[str, DiskUsage] = {}

    def _usage(path: str) -> DiskUsage:
        if path not in volumes:
            raise FileNotFoundError(2, "No such file or directory", path)
        return volumes[path]

    def _add(volume: str, total: int, free: int) -> None:
        used = total - free
        volumes[volume] = DiskUsage(total, used, free, round(used * 100 / total, 1) if total else 0.0)

    _usage.add = _add  # type: ignore[attr-defined]
    return _usage
