from __future__ import annotations

import csv
import html
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from reclaim_toolkit.models.cleanup import CleanupReport
from reclaim_toolkit.models.filesystem import DirectorySizeReport, LargeFileReport, UsageReport
from reclaim_toolkit.models.relocation import RelocationReport
from reclaim_toolkit.models.run import RunReport

USAGE_FIELDS = ["volume_id", "used_bytes", "used_percent", "free_bytes", "free_percent"]
LARGE_FILE_FIELDS = ["path", "size_gib"]
DIRECTORY_FIELDS = ["path", "size_gib", "size_mib", "file_count"]
ACTION_FIELDS = ["name", "outcome", "reason"]
RELOCATION_FIELDS = ["path", "size_gib", "outcome", "destination", "reason"]


@dataclass(frozen=True)
class ReportBundle:
    text: str
    html: str


def usage_rows(r: UsageReport | None) -> list[dict[str, Any]]:
    if r is None:
        return []
    return [
        {
            "volume_id": s.volume_id,
            "used_bytes": s.used_bytes,
            "used_percent": s.used_percent,
            "free_bytes": s.free_bytes,
            "free_percent": s.free_percent,
        }
        for s in r.samples
    ]


def large_file_rows(r: LargeFileReport | None) -> list[dict[str, Any]]:
    if r is None:
        return []
    return [{"path": f.path, "size_gib": f.size_gib} for f in r.records]


def directory_rows(r: DirectorySizeReport | None) -> list[dict[str, Any]]:
    if r is None:
        return []
    return [
        {"path": d.path, "size_gib": d.size_gib, "size_mib": d.size_mib, "file_count": d.file_count}
        for d in r.records
    ]


def action_rows(r: CleanupReport | None) -> list[dict[str, Any]]:
    if r is None:
        return []
    return [
        {"name": a.name, "outcome": a.outcome.value if a.outcome else "not run", "reason": a.reason or ""}
        for a in r.actions
    ]


def relocation_rows(r: RelocationReport | None) -> list[dict[str, Any]]:
    if r is None:
        return []
    return [
        {
            "path": x.record.path,
            "size_gib": x.record.size_gib,
            "outcome": x.outcome.value,
            "destination": x.destination or "",
            "reason": x.reason or "",
        }
        for x in r.results
    ]


class ReportService:
    def build_report(self, run: RunReport | None) -> ReportBundle:
        now = datetime.now().strftime("%F %T")

        lines: list[str] = [f"Reclaim Toolkit Report @ {now}", ""]
        if run is None:
            lines.append("- no data")
        else:
            lines.append(self._section_summary(run))
            lines.append(self._section_usage("Usage (before)", run.usage_before))
            lines.append(self._section_actions(run.cleanup))
            lines.append(self._section_large(run.large_files))
            lines.append(self._section_dirs(run.directories))
            lines.append(self._section_relocation(run.relocation))
            lines.append(self._section_usage("Usage (after)", run.usage_after))
        text_out = "\n".join(lines).strip() + "\n"

        html_out = self._wrap_html(text_out)
        return ReportBundle(text=text_out, html=html_out)

    def default_report_dir(self, base: str | os.PathLike[str]) -> Path:
        ts = datetime.now().strftime("%Y%m%d-%H%M%S")
        out = Path(base) / f"reclaim_{ts}"
        out.mkdir(parents=True, exist_ok=True)
        return out

    def write_html(self, path: str | os.PathLike[str], html_str: str) -> str:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(html_str, encoding="utf-8")
        return str(p)

    def write_csv(self, path: str | os.PathLike[str], fields: list[str], rows: list[dict[str, Any]]) -> str:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "w", encoding="utf-8", newline="") as f:
            w = csv.DictWriter(f, fieldnames=fields)
            w.writeheader()
            w.writerows(rows)
        return str(p)

    def export(self, run: RunReport, out_dir: str | os.PathLike[str]) -> list[str]:
        """Write every report of a run as CSV plus the HTML summary; returns written paths."""
        out = Path(out_dir)
        written: list[str] = []
        if run.usage_before is not None:
            written.append(self.write_csv(out / "usage_before.csv", USAGE_FIELDS, usage_rows(run.usage_before)))
        if run.usage_after is not None:
            written.append(self.write_csv(out / "usage_after.csv", USAGE_FIELDS, usage_rows(run.usage_after)))
        if run.cleanup is not None:
            written.append(self.write_csv(out / "actions.csv", ACTION_FIELDS, action_rows(run.cleanup)))
        if run.large_files is not None:
            written.append(self.write_csv(out / "large_files.csv", LARGE_FILE_FIELDS, large_file_rows(run.large_files)))
        if run.directories is not None:
            written.append(self.write_csv(out / "directories.csv", DIRECTORY_FIELDS, directory_rows(run.directories)))
        if run.relocation is not None:
            written.append(self.write_csv(out / "relocation.csv", RELOCATION_FIELDS, relocation_rows(run.relocation)))
        written.append(self.write_html(out / "report.html", self.build_report(run).html))
        return written

    def _section_summary(self, run: RunReport) -> str:
        rows = "\n".join(
            f"  - {c.category}: ok={c.ok} skipped={c.skipped} failed={c.failed}" for c in run.summary()
        )
        out = (
            "[Summary]\n"
            f"- started: {run.started_at:%F %T}\n"
            f"- status: {run.status}\n"
            f"- counts:\n{rows}\n"
        )
        if run.fatal:
            out += f"- fatal: {run.fatal}\n"
        for n in run.notes:
            out += f"- note: {n}\n"
        return out

    def _section_usage(self, title: str, r: UsageReport | None) -> str:
        if r is None:
            return f"[{title}]\n- no data\n"
        lines = [f"[{title}]"]
        for row in usage_rows(r):
            lines.append(
                f"- {row['volume_id']}: used {row['used_percent']:.2f}% ({row['used_bytes']} B), "
                f"free {row['free_percent']:.2f}% ({row['free_bytes']} B)"
            )
        for f in r.failed:
            lines.append(f"- {f.volume_id}: unavailable ({f.reason})")
        return "\n".join(lines) + "\n"

    def _section_actions(self, r: CleanupReport | None) -> str:
        if r is None:
            return "[Cleanup]\n- not run\n"
        lines = ["[Cleanup]"]
        for row in action_rows(r):
            reason = f" ({row['reason']})" if row["reason"] else ""
            lines.append(f"- {row['name']}: {row['outcome']}{reason}")
        return "\n".join(lines) + "\n"

    def _section_large(self, r: LargeFileReport | None) -> str:
        if r is None:
            return "[Large Files]\n- no data\n"
        lines = [f"[Large Files] ({len(r.records)}, traversal errors={r.errors.count})"]
        if r.aborted:
            lines.append("- scan aborted; list is incomplete")
        for row in large_file_rows(r)[:50]:
            lines.append(f"- {row['size_gib']:.2f} GiB  {row['path']}")
        return "\n".join(lines) + "\n"

    def _section_dirs(self, r: DirectorySizeReport | None) -> str:
        if r is None:
            return "[Directories]\n- no data\n"
        lines = [f"[Directories] (top 50 of {len(r.records)}, unreadable={r.partial_count})"]
        for row in directory_rows(r)[:50]:
            lines.append(f"- {row['size_gib']:.2f} GiB  {row['file_count']} files  {row['path']}")
        return "\n".join(lines) + "\n"

    def _section_relocation(self, r: RelocationReport | None) -> str:
        if r is None:
            return "[Relocation]\n- not run\n"
        lines = [f"[Relocation] -> {r.plan.destination_root}"]
        for row in relocation_rows(r):
            lines.append(f"- {row['outcome']}: {row['path']} {row['reason']}".rstrip())
        return "\n".join(lines) + "\n"

    def _wrap_html(self, text_out: str) -> str:
        escaped = html.escape(text_out)
        return (
            "<!doctype html>"
            "<html><head><meta charset='utf-8'>"
            "<meta name='viewport' content='width=device-width, initial-scale=1'>"
            "<title>Reclaim Toolkit Report</title>"
            "<style>body{font-family:ui-monospace,Menlo,Consolas,monospace;margin:24px;}"
            "pre{white-space:pre-wrap;line-height:1.35;}"
            "</style></head><body>"
            "<h1>Reclaim Toolkit Report</h1>"
            f"<pre>{escaped}</pre>"
            "</body></html>"
        )
