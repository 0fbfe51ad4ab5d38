from __future__ import annotations

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QAbstractItemView,
    QCheckBox,
    QDoubleSpinBox,
    QGridLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSpinBox,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from reclaim_toolkit.models.common import GIB, CollectorResult
from reclaim_toolkit.models.filesystem import DirectorySizeRecord, LargeFileRecord
from reclaim_toolkit.models.run import RunReport

# Rows shown per table; the CSV export always has everything.
MAX_ROWS = 500


class FilesystemPage(QWidget):
    applyRequested = Signal(dict)

    def __init__(self) -> None:
        super().__init__()

        self._status = QLabel("-")
        self._notes = QLabel("")
        self._notes.setWordWrap(True)
        self._status.setTextInteractionFlags(Qt.TextSelectableByMouse)

        self._roots = QLineEdit("")
        self._roots.setPlaceholderText("scan roots, separated by ;")
        self._threshold_gb = QDoubleSpinBox()
        self._threshold_gb.setRange(0.01, 10240.0)
        self._threshold_gb.setDecimals(2)
        self._threshold_gb.setValue(1.0)
        self._workers = QSpinBox()
        self._workers.setRange(1, 32)
        self._workers.setValue(1)
        self._follow = QCheckBox("Follow symlinks")

        apply_btn = QPushButton("Apply")
        apply_btn.clicked.connect(self._on_apply_clicked)  # type: ignore[arg-type]

        cfg = QGroupBox("Scan Config")
        cfg_grid = QGridLayout(cfg)
        cfg_grid.addWidget(QLabel("Scan Roots"), 0, 0)
        cfg_grid.addWidget(self._roots, 0, 1)
        cfg_grid.addWidget(QLabel("Large File (GiB)"), 1, 0)
        cfg_grid.addWidget(self._threshold_gb, 1, 1)
        cfg_grid.addWidget(QLabel("Workers"), 2, 0)
        cfg_grid.addWidget(self._workers, 2, 1)
        cfg_grid.addWidget(self._follow, 3, 1)

        cfg_row = QHBoxLayout()
        cfg_row.addWidget(cfg)
        cfg_row.addStretch(1)
        cfg_row.addWidget(apply_btn)

        metrics = QGroupBox("Scan Summary")
        grid = QGridLayout(metrics)
        grid.addWidget(QLabel("Status"), 0, 0)
        grid.addWidget(self._status, 0, 1)
        grid.addWidget(QLabel("Notes"), 1, 0)
        grid.addWidget(self._notes, 1, 1)

        self._large = self._make_table("Large Files", ["SIZE(GiB)", "PATH"], 2)
        self._dirs = self._make_table("Directory Sizes", ["SIZE(GiB)", "SIZE(MiB)", "FILES", "PATH"], 4)

        layout = QVBoxLayout(self)
        layout.addLayout(cfg_row)
        layout.addWidget(metrics)
        layout.addWidget(self._large[0], 1)
        layout.addWidget(self._dirs[0], 2)

    def load_config(self, cfg: dict) -> None:
        self._roots.setText("; ".join(cfg.get("scan_roots") or []))
        self._threshold_gb.setValue(float(cfg.get("large_file_threshold_bytes") or GIB) / GIB)
        self._workers.setValue(int(cfg.get("workers") or 1))
        self._follow.setChecked(bool(cfg.get("follow_symlinks", False)))

    def _on_apply_clicked(self) -> None:
        roots = [r.strip() for r in self._roots.text().split(";") if r.strip()]
        cfg = {
            "large_file_threshold_bytes": int(self._threshold_gb.value() * GIB),
            "workers": int(self._workers.value()),
            "follow_symlinks": self._follow.isChecked(),
        }
        if roots:
            cfg["scan_roots"] = roots
        self.applyRequested.emit(cfg)

    def _make_table(self, title: str, headers: list[str], cols: int) -> tuple[QGroupBox, QTableWidget]:
        gb = QGroupBox(title)
        t = QTableWidget(0, cols)
        t.setHorizontalHeaderLabels(headers)
        t.setEditTriggers(QAbstractItemView.NoEditTriggers)
        t.setSelectionBehavior(QAbstractItemView.SelectRows)
        t.setAlternatingRowColors(True)
        t.horizontalHeader().setStretchLastSection(True)
        l = QVBoxLayout(gb)
        l.addWidget(t)
        return gb, t

    def set_data(self, result: CollectorResult[RunReport]) -> None:
        run = result.data
        self._status.setText(str(result.status))

        notes: list[str] = []
        if run.fatal:
            notes.append(run.fatal)
        if run.large_files is not None:
            lf = run.large_files
            notes.append(f"large files: {len(lf.records)} (traversal errors: {lf.errors.count})")
            if lf.aborted:
                notes.append("large file scan aborted; list is incomplete")
        if run.directories is not None:
            d = run.directories
            notes.append(f"directories: {len(d.records)} (unreadable: {d.partial_count})")
        self._notes.setText("\n".join(notes))

        self._fill_large(self._large[1], run.large_files.records if run.large_files else [])
        self._fill_dirs(self._dirs[1], run.directories.records if run.directories else [])

    def _fill_large(self, t: QTableWidget, rows: list[LargeFileRecord]) -> None:
        rows = rows[:MAX_ROWS]
        t.setRowCount(len(rows))
        for r, f in enumerate(rows):
            t.setItem(r, 0, QTableWidgetItem(f"{f.size_gib:.2f}"))
            t.setItem(r, 1, QTableWidgetItem(f.path))
        t.resizeColumnsToContents()

    def _fill_dirs(self, t: QTableWidget, rows: list[DirectorySizeRecord]) -> None:
        rows = rows[:MAX_ROWS]
        t.setRowCount(len(rows))
        for r, d in enumerate(rows):
            t.setItem(r, 0, QTableWidgetItem(f"{d.size_gib:.2f}"))
            t.setItem(r, 1, QTableWidgetItem(f"{d.size_mib:.2f}"))
            t.setItem(r, 2, QTableWidgetItem("unreadable" if d.partial else str(d.file_count)))
            t.setItem(r, 3, QTableWidgetItem(d.path))
        t.resizeColumnsToContents()
