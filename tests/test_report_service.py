"""
Tests for reclaim_toolkit/services/report_service.py.
"""

import csv
from datetime import datetime
from pathlib import Path

import pytest

from reclaim_toolkit.models.cleanup import ActionOutcome, CleanupAction, CleanupReport
from reclaim_toolkit.models.filesystem import (
    DirectorySizeRecord,
    DirectorySizeReport,
    LargeFileRecord,
    LargeFileReport,
    TraversalErrors,
    UsageReport,
    VolumeUsageSample,
)
from reclaim_toolkit.models.run import RunReport
from reclaim_toolkit.services.report_service import (
    ReportService,
    action_rows,
    directory_rows,
    large_file_rows,
    usage_rows,
)

GIB = 1024**3
WHEN = datetime(2026, 3, 1, 12, 0, 0)


@pytest.fixture
def run():
    done = CleanupAction.command("powercfg", "powercfg", "/hibernate", "off")
    done.record(ActionOutcome.SUCCEEDED)
    broken = CleanupAction.command("vssadmin", "vssadmin")
    broken.record(ActionOutcome.FAILED, "exit status 2")
    pending = CleanupAction.command("later", "later")
    no_errors = TraversalErrors(count=0, sample_paths=[])
    return RunReport(
        started_at=WHEN,
        finished_at=WHEN,
        usage_before=UsageReport(samples=[VolumeUsageSample("C:\\", 100, 10, WHEN)], failed=[]),
        cleanup=CleanupReport(actions=[done, broken, pending]),
        large_files=LargeFileReport(
            roots=["C:\\Users"],
            threshold_bytes=GIB,
            records=[LargeFileRecord("C:\\Users\\a\\disk.vhdx", 2 * GIB)],
            errors=no_errors,
        ),
        directories=DirectorySizeReport(
            roots=["C:\\Users"],
            records=[DirectorySizeRecord("C:\\Users", 3 * GIB, 7)],
            errors=no_errors,
        ),
        usage_after=UsageReport(samples=[VolumeUsageSample("C:\\", 100, 40, WHEN)], failed=[]),
    )


class TestRows:
    def test_usage_row_values(self, run):
        assert usage_rows(run.usage_before) == [
            {"volume_id": "C:\\", "used_bytes": 90, "used_percent": 90.0, "free_bytes": 10, "free_percent": 10.0}
        ]

    def test_action_rows_mark_unexecuted(self, run):
        rows = action_rows(run.cleanup)
        assert [r["outcome"] for r in rows] == ["succeeded", "failed", "not run"]
        assert rows[1]["reason"] == "exit status 2"

    def test_size_units(self, run):
        assert large_file_rows(run.large_files) == [{"path": "C:\\Users\\a\\disk.vhdx", "size_gib": 2.0}]
        assert directory_rows(run.directories)[0]["size_mib"] == 3072.0

    def test_missing_reports_give_no_rows(self):
        assert usage_rows(None) == []
        assert action_rows(None) == []


class TestBuildReport:
    def test_text_sections(self, run):
        text = ReportService().build_report(run).text
        assert "[Summary]" in text
        assert "- status: WARN" in text
        assert "- vssadmin: failed (exit status 2)" in text
        assert "[Relocation]\n- not run" in text

    def test_html_is_escaped(self, run):
        run.notes.append("<script>")
        out = ReportService().build_report(run).html
        assert "&lt;script&gt;" in out
        assert "<script>" not in out

    def test_no_run(self):
        assert "- no data" in ReportService().build_report(None).text


def test_export_writes_csv_and_html(run, tmp_path):
    written = ReportService().export(run, tmp_path / "out")
    names = sorted(Path(p).name for p in written)
    assert names == [
        "actions.csv",
        "directories.csv",
        "large_files.csv",
        "report.html",
        "usage_after.csv",
        "usage_before.csv",
    ]
    with open(tmp_path / "out" / "actions.csv", encoding="utf-8", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [r["name"] for r in rows] == ["powercfg", "vssadmin", "later"]


def test_default_report_dir_is_created(tmp_path):
    out = ReportService().default_report_dir(tmp_path)
    assert out.is_dir()
    assert out.name.startswith("reclaim_")
