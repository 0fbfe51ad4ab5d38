"""
Tests for reclaim_toolkit/services/run_service.py.
"""

import threading

from reclaim_toolkit.collectors.usage_collector import UsageReporter
from reclaim_toolkit.models.cleanup import ActionOutcome, CleanupAction
from reclaim_toolkit.models.config import ReclaimConfig
from reclaim_toolkit.models.relocation import RelocationOutcome
from reclaim_toolkit.services.cleanup_service import CleanupActionRunner
from reclaim_toolkit.services.command_service import CommandResult
from reclaim_toolkit.services.run_service import RunService

from conftest import DiskUsage, make_file


class ShrinkingDisk:
    """Reports more free space on every call, as if cleanup worked."""

    def __init__(self, total=1000, free=100, step=50):
        self.total, self.free, self.step = total, free, step

    def __call__(self, path):
        usage = DiskUsage(self.total, self.total - self.free, self.free, 0.0)
        self.free += self.step
        return usage


def ok_commands(argv):
    return CommandResult(returncode=0)


def make_service(cfg, actions=None, disk=None, **kw):
    return RunService(
        cfg,
        actions=actions if actions is not None else [],
        usage=UsageReporter(disk_usage=disk or ShrinkingDisk()),
        runner=kw.pop("runner", None) or CleanupActionRunner(command_runner=ok_commands),
        **kw,
    )


def test_full_run_produces_every_report(make_tree, tmp_path):
    root = make_tree({"big.iso": 5000, "docs/small.txt": 10})
    temp = tmp_path / "temp"
    make_file(temp / "junk", 3)
    cfg = ReclaimConfig(target_volume="/vol", scan_roots=[str(root)], large_file_threshold_bytes=1000)
    actions = [
        CleanupAction.delete_paths("temp", str(temp)),
        CleanupAction.command("tool", "tool"),
    ]

    stages = []
    report = make_service(cfg, actions).run(progress=stages.append)

    assert stages == ["usage (before)", "cleanup", "large files", "directories", "usage (after)"]
    assert [a.outcome for a in report.cleanup.actions] == [ActionOutcome.SUCCEEDED, ActionOutcome.SUCCEEDED]
    assert [r.path for r in report.large_files.records] == [str(root / "big.iso")]
    assert report.directories.get(str(root)).total_bytes == 5010
    assert report.freed_bytes("/vol") == 50
    assert report.relocation is None
    assert report.status == "OK"
    assert report.finished_at is not None


def test_missing_primary_root_is_fatal_but_reports_usage(tmp_path):
    cfg = ReclaimConfig(target_volume="/vol", scan_roots=[str(tmp_path / "missing")])
    report = make_service(cfg).run()

    assert report.fatal is not None
    assert report.status == "FATAL"
    assert report.cleanup is not None
    assert report.usage_after is not None
    assert report.large_files is None


def test_failed_action_makes_run_warn(make_tree):
    root = make_tree({"f": 1})
    cfg = ReclaimConfig(target_volume="/vol", scan_roots=[str(root)])
    runner = CleanupActionRunner(command_runner=lambda argv: CommandResult(returncode=1))
    report = make_service(cfg, [CleanupAction.command("bad", "bad")], runner=runner).run()

    assert report.status == "WARN"
    actions = next(r for r in report.summary() if r.category == "actions")
    assert (actions.ok, actions.failed) == (0, 1)


def test_cleanup_can_be_disabled(make_tree):
    root = make_tree({"f": 1})
    cfg = ReclaimConfig(target_volume="/vol", scan_roots=[str(root)], cleanup=False)
    report = make_service(cfg, [CleanupAction.command("x", "x")]).run()
    assert report.cleanup is None


def test_relocation_moves_to_first_candidate(make_tree, tmp_path):
    root = make_tree({"big.iso": 5000})
    dest_vol = tmp_path / "D"
    cfg = ReclaimConfig(
        target_volume="/vol",
        scan_roots=[str(root)],
        large_file_threshold_bytes=1000,
        relocate=True,
        candidate_volumes=["/vol", str(dest_vol), str(tmp_path / "E")],
    )
    report = make_service(cfg).run()

    assert report.relocation.plan.volume_id == str(dest_vol)
    assert report.relocation.count(RelocationOutcome.MOVED) == 1
    assert (dest_vol / "LargeFiles" / "big.iso").exists()


def test_relocation_without_candidates_is_noted(make_tree):
    root = make_tree({"big.iso": 5000})
    cfg = ReclaimConfig(
        target_volume="/vol",
        scan_roots=[str(root)],
        large_file_threshold_bytes=1000,
        relocate=True,
        candidate_volumes=[],
    )
    report = make_service(cfg).run()
    assert report.relocation is None
    assert any("relocation skipped" in n for n in report.notes)
    assert (root / "big.iso").exists()


def test_cancel_skips_remaining_stages(make_tree):
    root = make_tree({"f": 1})
    cfg = ReclaimConfig(target_volume="/vol", scan_roots=[str(root)])
    ev = threading.Event()
    ev.set()
    svc = make_service(cfg, [CleanupAction.command("x", "x")], cancel_event=ev)
    report = svc.run()

    assert svc.cancelled
    assert report.large_files is None
    assert report.directories is None
    assert "run cancelled" in report.notes
    assert report.usage_after is not None


def test_collect_wraps_report(make_tree):
    root = make_tree({"f": 1})
    cfg = ReclaimConfig(target_volume="/vol", scan_roots=[str(root)])
    result = make_service(cfg).collect()
    assert result.status == "OK"
    assert result.warning_count == 0
    assert result.data.large_files is not None
