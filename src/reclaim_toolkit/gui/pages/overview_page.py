from __future__ import annotations

from datetime import datetime

from PySide6.QtCore import Qt
from PySide6.QtWidgets import (
    QAbstractItemView,
    QGridLayout,
    QGroupBox,
    QLabel,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from reclaim_toolkit.models.common import CollectorResult, to_gib
from reclaim_toolkit.models.filesystem import UsageReport
from reclaim_toolkit.models.run import RunReport


class OverviewPage(QWidget):
    def __init__(self) -> None:
        super().__init__()

        self._last_update = QLabel("Last Run: -")
        self._status = QLabel("Status: -")
        self._freed = QLabel("Freed: -")
        self._warnings = QLabel("Warnings: -")
        self._warnings.setWordWrap(True)

        for lbl in (self._status, self._freed, self._warnings):
            lbl.setTextInteractionFlags(Qt.TextSelectableByMouse)

        gb = QGroupBox("Overview")
        grid = QGridLayout(gb)
        grid.addWidget(self._last_update, 0, 0, 1, 2)
        grid.addWidget(self._status, 1, 0, 1, 2)
        grid.addWidget(self._freed, 2, 0, 1, 2)
        grid.addWidget(self._warnings, 3, 0, 1, 2)

        self._usage = QTableWidget(0, 6)
        self._usage.setHorizontalHeaderLabels(["WHEN", "VOLUME", "USED(GiB)", "USED%", "FREE(GiB)", "FREE%"])
        self._usage.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self._usage.horizontalHeader().setStretchLastSection(True)
        self._usage.verticalHeader().setVisible(False)
        usage_box = QGroupBox("Volume Usage")
        QVBoxLayout(usage_box).addWidget(self._usage)

        self._summary = QTableWidget(0, 4)
        self._summary.setHorizontalHeaderLabels(["CATEGORY", "OK", "SKIPPED", "FAILED"])
        self._summary.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self._summary.horizontalHeader().setStretchLastSection(True)
        self._summary.verticalHeader().setVisible(False)
        summary_box = QGroupBox("Summary")
        QVBoxLayout(summary_box).addWidget(self._summary)

        root = QVBoxLayout(self)
        root.addWidget(gb)
        root.addWidget(usage_box)
        root.addWidget(summary_box)
        root.addStretch(1)

    def set_usage(self, when: str, usage: UsageReport) -> None:
        self._usage.setRowCount(0)
        self._append_usage(when, usage)

    def set_data(self, result: CollectorResult[RunReport]) -> None:
        run = result.data
        ts = result.ts.strftime("%F %T") if isinstance(result.ts, datetime) else str(result.ts)
        self._last_update.setText(f"Last Run: {ts}")
        self._status.setText(f"Status: {result.status}")
        self._warnings.setText("Warnings: " + ("; ".join(result.warnings) if result.warnings else "none"))

        freed = [run.freed_bytes(s.volume_id) for s in (run.usage_before.samples if run.usage_before else [])]
        freed = [f for f in freed if f is not None]
        self._freed.setText(f"Freed: {to_gib(sum(freed)):.2f} GiB" if freed else "Freed: -")

        self._usage.setRowCount(0)
        if run.usage_before is not None:
            self._append_usage("before", run.usage_before)
        if run.usage_after is not None:
            self._append_usage("after", run.usage_after)

        rows = run.summary()
        self._summary.setRowCount(len(rows))
        for r, c in enumerate(rows):
            self._summary.setItem(r, 0, QTableWidgetItem(c.category))
            self._summary.setItem(r, 1, QTableWidgetItem(str(c.ok)))
            self._summary.setItem(r, 2, QTableWidgetItem(str(c.skipped)))
            self._summary.setItem(r, 3, QTableWidgetItem(str(c.failed)))
        self._summary.resizeColumnsToContents()

    def _append_usage(self, when: str, usage: UsageReport) -> None:
        t = self._usage
        for s in usage.samples:
            r = t.rowCount()
            t.insertRow(r)
            t.setItem(r, 0, QTableWidgetItem(when))
            t.setItem(r, 1, QTableWidgetItem(s.volume_id))
            t.setItem(r, 2, QTableWidgetItem(f"{to_gib(s.used_bytes):.2f}"))
            t.setItem(r, 3, QTableWidgetItem(f"{s.used_percent:.2f}"))
            t.setItem(r, 4, QTableWidgetItem(f"{to_gib(s.free_bytes):.2f}"))
            t.setItem(r, 5, QTableWidgetItem(f"{s.free_percent:.2f}"))
        for f in usage.failed:
            r = t.rowCount()
            t.insertRow(r)
            t.setItem(r, 0, QTableWidgetItem(when))
            t.setItem(r, 1, QTableWidgetItem(f.volume_id))
            t.setItem(r, 2, QTableWidgetItem(f"unavailable: {f.reason}"))
        t.resizeColumnsToContents()
