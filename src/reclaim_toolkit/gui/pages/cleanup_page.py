from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QAbstractItemView,
    QCheckBox,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from reclaim_toolkit.models.cleanup import ActionOutcome, CleanupAction
from reclaim_toolkit.models.common import CollectorResult, to_mib
from reclaim_toolkit.models.relocation import RelocationResult
from reclaim_toolkit.models.run import RunReport


class CleanupPage(QWidget):
    applyRequested = Signal(dict)

    def __init__(self) -> None:
        super().__init__()

        self._status = QLabel("-")
        self._status.setTextInteractionFlags(Qt.TextSelectableByMouse)
        self._notes = QLabel("")
        self._notes.setWordWrap(True)

        self._cleanup = QCheckBox("Run cleanup actions")
        self._cleanup.setChecked(True)
        self._dry_run = QCheckBox("Dry run (report only)")
        self._retry = QCheckBox("Retry files in use once")
        self._retry.setChecked(True)
        self._relocate = QCheckBox("Relocate large files")
        self._skip = QLineEdit("")
        self._skip.setPlaceholderText("action names to skip, comma separated")
        self._destinations = QLineEdit("")
        self._destinations.setPlaceholderText("candidate volumes, comma separated (empty: auto)")

        apply_btn = QPushButton("Apply")
        apply_btn.clicked.connect(self._on_apply_clicked)  # type: ignore[arg-type]

        cfg = QGroupBox("Cleanup Config")
        cfg_grid = QGridLayout(cfg)
        cfg_grid.addWidget(self._cleanup, 0, 0)
        cfg_grid.addWidget(self._dry_run, 0, 1)
        cfg_grid.addWidget(self._retry, 1, 0)
        cfg_grid.addWidget(self._relocate, 1, 1)
        cfg_grid.addWidget(QLabel("Skip Actions"), 2, 0)
        cfg_grid.addWidget(self._skip, 2, 1)
        cfg_grid.addWidget(QLabel("Destinations"), 3, 0)
        cfg_grid.addWidget(self._destinations, 3, 1)

        cfg_row = QHBoxLayout()
        cfg_row.addWidget(cfg)
        cfg_row.addStretch(1)
        cfg_row.addWidget(apply_btn)

        summary = QGroupBox("Cleanup Summary")
        grid = QGridLayout(summary)
        grid.addWidget(QLabel("Status"), 0, 0)
        grid.addWidget(self._status, 0, 1)
        grid.addWidget(QLabel("Notes"), 1, 0)
        grid.addWidget(self._notes, 1, 1)

        self._actions = self._make_table(
            ["ACTION", "KIND", "OUTCOME", "REMOVED", "FAILED", "RETRIED", "FREED(MiB)", "REASON"]
        )
        actions_box = QGroupBox("Actions (in run order)")
        QVBoxLayout(actions_box).addWidget(self._actions)

        self._moves = self._make_table(["OUTCOME", "PATH", "DESTINATION", "REASON"])
        moves_box = QGroupBox("Relocation")
        QVBoxLayout(moves_box).addWidget(self._moves)

        layout = QVBoxLayout(self)
        layout.addLayout(cfg_row)
        layout.addWidget(summary)
        layout.addWidget(actions_box, 3)
        layout.addWidget(moves_box, 1)

    def load_config(self, cfg: dict) -> None:
        self._cleanup.setChecked(bool(cfg.get("cleanup", True)))
        self._dry_run.setChecked(bool(cfg.get("dry_run", False)))
        self._retry.setChecked(bool(cfg.get("retry_in_use", True)))
        self._relocate.setChecked(bool(cfg.get("relocate", False)))
        self._skip.setText(", ".join(cfg.get("skip_actions") or []))
        self._destinations.setText(", ".join(cfg.get("candidate_volumes") or []))

    def _on_apply_clicked(self) -> None:
        skip = [s.strip() for s in self._skip.text().split(",") if s.strip()]
        dest = [s.strip() for s in self._destinations.text().split(",") if s.strip()]
        self.applyRequested.emit(
            {
                "cleanup": self._cleanup.isChecked(),
                "dry_run": self._dry_run.isChecked(),
                "retry_in_use": self._retry.isChecked(),
                "relocate": self._relocate.isChecked(),
                "skip_actions": skip,
                "candidate_volumes": dest or None,
            }
        )

    def _make_table(self, headers: list[str]) -> QTableWidget:
        t = QTableWidget(0, len(headers))
        t.setHorizontalHeaderLabels(headers)
        t.setEditTriggers(QAbstractItemView.NoEditTriggers)
        t.setSelectionBehavior(QAbstractItemView.SelectRows)
        t.setAlternatingRowColors(True)
        t.horizontalHeader().setStretchLastSection(True)
        t.verticalHeader().setVisible(False)
        return t

    def set_data(self, result: CollectorResult[RunReport]) -> None:
        run = result.data
        self._status.setText(str(result.status))
        self._notes.setText("\n".join(run.notes) if run.notes else "")

        actions = run.cleanup.actions if run.cleanup is not None else []
        self._fill_actions(actions)
        moves = run.relocation.results if run.relocation is not None else []
        self._fill_moves(moves)

    def _fill_actions(self, rows: list[CleanupAction]) -> None:
        t = self._actions
        t.setRowCount(len(rows))
        for r, a in enumerate(rows):
            outcome = a.outcome.value if a.outcome else "not run"
            t.setItem(r, 0, QTableWidgetItem(a.name))
            t.setItem(r, 1, QTableWidgetItem(a.kind.value))
            item = QTableWidgetItem(outcome)
            if a.outcome == ActionOutcome.FAILED:
                item.setForeground(Qt.red)
            t.setItem(r, 2, item)
            t.setItem(r, 3, QTableWidgetItem(str(a.stats.removed)))
            t.setItem(r, 4, QTableWidgetItem(str(a.stats.failed)))
            t.setItem(r, 5, QTableWidgetItem(str(a.stats.retried)))
            t.setItem(r, 6, QTableWidgetItem(f"{to_mib(a.stats.bytes_freed):.2f}"))
            t.setItem(r, 7, QTableWidgetItem(a.reason or ""))
        t.resizeColumnsToContents()

    def _fill_moves(self, rows: list[RelocationResult]) -> None:
        t = self._moves
        t.setRowCount(len(rows))
        for r, m in enumerate(rows):
            t.setItem(r, 0, QTableWidgetItem(m.outcome.value))
            t.setItem(r, 1, QTableWidgetItem(m.record.path))
            t.setItem(r, 2, QTableWidgetItem(m.destination or ""))
            t.setItem(r, 3, QTableWidgetItem(m.reason or ""))
        t.resizeColumnsToContents()
