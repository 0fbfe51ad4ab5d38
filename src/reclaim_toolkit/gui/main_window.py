from __future__ import annotations

import logging
from typing import Any, Callable

from PySide6.QtCore import QThreadPool
from PySide6.QtWidgets import (
    QMainWindow,
    QMessageBox,
    QPushButton,
    QSplitter,
    QStackedWidget,
    QTreeWidget,
    QTreeWidgetItem,
)

from reclaim_toolkit.collectors.usage_collector import UsageReporter, system_volume
from reclaim_toolkit.gui.pages.cleanup_page import CleanupPage
from reclaim_toolkit.gui.pages.filesystem_page import FilesystemPage
from reclaim_toolkit.gui.pages.overview_page import OverviewPage
from reclaim_toolkit.gui.workers import Worker, WorkerJob
from reclaim_toolkit.models.common import CollectorResult
from reclaim_toolkit.models.config import ReclaimConfig
from reclaim_toolkit.models.filesystem import UsageReport
from reclaim_toolkit.models.run import RunReport
from reclaim_toolkit.services.config_service import ConfigService
from reclaim_toolkit.services.logging_service import configure_logging
from reclaim_toolkit.services.report_service import ReportService
from reclaim_toolkit.services.run_service import RunService

logger = logging.getLogger(__name__)


class MainWindow(QMainWindow):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Reclaim Toolkit")
        self.resize(1100, 760)

        self._config = ConfigService()
        self._reporter = ReportService()
        self._latest_run: CollectorResult[RunReport] | None = None
        self._run_service: RunService | None = None

        self._thread_pool = QThreadPool.globalInstance()
        self._active_workers: set[Worker] = set()

        self._cfg = self._load_config()
        configure_logging(self._cfg)

        self._nav = QTreeWidget()
        self._nav.setHeaderHidden(True)

        self._pages = QStackedWidget()
        self._overview = OverviewPage()
        self._cleanup = CleanupPage()
        self._filesystem = FilesystemPage()

        self._pages.addWidget(self._overview)
        self._pages.addWidget(self._cleanup)
        self._pages.addWidget(self._filesystem)

        self._nav_items: dict[str, int] = {
            "Overview": 0,
            "Cleanup": 1,
            "Filesystem": 2,
        }
        for title in self._nav_items.keys():
            self._nav.addTopLevelItem(QTreeWidgetItem([title]))
        self._nav.setCurrentItem(self._nav.topLevelItem(0))

        splitter = QSplitter()
        splitter.addWidget(self._nav)
        splitter.addWidget(self._pages)
        splitter.setStretchFactor(0, 0)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)

        self.statusBar().showMessage("Ready")

        self._run_btn = QPushButton("Run")
        self._run_btn.clicked.connect(self._start_run)  # type: ignore[arg-type]
        self._cancel_btn = QPushButton("Cancel")
        self._cancel_btn.setEnabled(False)
        self._cancel_btn.clicked.connect(self._cancel_run)  # type: ignore[arg-type]
        export_btn = QPushButton("Export Report")
        export_btn.clicked.connect(self._export_report)  # type: ignore[arg-type]
        self.statusBar().addPermanentWidget(self._run_btn)
        self.statusBar().addPermanentWidget(self._cancel_btn)
        self.statusBar().addPermanentWidget(export_btn)

        self._nav.currentItemChanged.connect(self._on_nav_changed)  # type: ignore[arg-type]
        self._cleanup.applyRequested.connect(self._on_apply)  # type: ignore[arg-type]
        self._filesystem.applyRequested.connect(self._on_apply)  # type: ignore[arg-type]

        cfg_dict = self._cfg.to_dict()
        self._cleanup.load_config(cfg_dict)
        self._filesystem.load_config(cfg_dict)

        self.refresh_usage()

    def _load_config(self) -> ReclaimConfig:
        try:
            return self._config.load_config()
        except ValueError as e:
            logger.warning("using defaults: %s", e)
            return ReclaimConfig()

    def _on_apply(self, changes: dict) -> None:
        try:
            self._cfg = ReclaimConfig.from_dict(changes, base=self._cfg)
        except ValueError as e:
            QMessageBox.warning(self, "Invalid setting", str(e))
            return
        self._config.save_config(self._cfg)
        self.statusBar().showMessage(
            f"Config applied: roots={self._cfg.scan_roots} dry_run={self._cfg.dry_run} relocate={self._cfg.relocate}"
        )

    def _on_nav_changed(self, current: QTreeWidgetItem | None, _prev: QTreeWidgetItem | None) -> None:
        if current is None:
            return
        title = current.text(0)
        idx = self._nav_items.get(title)
        if idx is not None:
            self._pages.setCurrentIndex(idx)

    def _submit(self, fn: Callable[[Callable[[str], None]], Any], on_result: Callable[[Any], None]) -> Worker:
        w = Worker(WorkerJob(fn=fn))
        self._active_workers.add(w)
        w.signals.result.connect(lambda r, _w=w: on_result(r))  # type: ignore[arg-type]
        w.signals.error.connect(lambda m, _w=w: self._on_worker_error(m))  # type: ignore[arg-type]
        w.signals.progress.connect(lambda s, _w=w: self.statusBar().showMessage(f"Running: {s}"))  # type: ignore[arg-type]
        w.signals.finished.connect(lambda _w=w: self._active_workers.discard(_w))  # type: ignore[arg-type]
        self._thread_pool.start(w)
        return w

    def refresh_usage(self) -> None:
        volume = self._cfg.target_volume or system_volume()

        def job(_progress: Callable[[str], None]) -> UsageReport:
            return UsageReporter().sample([volume])

        self._submit(job, self._on_usage_result)

    def _on_usage_result(self, res: Any) -> None:
        if isinstance(res, UsageReport) and self._latest_run is None:
            self._overview.set_usage("current", res)

    def _start_run(self) -> None:
        if self._run_service is not None:
            return
        svc = RunService(self._cfg)
        self._run_service = svc
        self._run_btn.setEnabled(False)
        self._cancel_btn.setEnabled(True)

        def job(progress: Callable[[str], None]) -> CollectorResult[RunReport]:
            return svc.collect(progress)

        w = self._submit(job, self._on_run_result)
        w.signals.finished.connect(self._on_run_finished)  # type: ignore[arg-type]

    def _cancel_run(self) -> None:
        if self._run_service is not None:
            self._run_service.cancel()
            self.statusBar().showMessage("Cancelling after the current step...")

    def _on_run_finished(self) -> None:
        self._run_service = None
        self._run_btn.setEnabled(True)
        self._cancel_btn.setEnabled(False)

    def _on_run_result(self, res: Any) -> None:
        if not isinstance(res, CollectorResult):
            return
        try:
            self._latest_run = res
            self._overview.set_data(res)
            self._cleanup.set_data(res)
            self._filesystem.set_data(res)
            self.statusBar().showMessage(
                f"Finished: {res.ts.strftime('%F %T')} | Status: {res.status} | Warnings: {res.warning_count}"
            )
        except Exception as e:  # noqa: BLE001
            self._on_worker_error(str(e))

    def _export_report(self) -> None:
        if self._latest_run is None:
            self.statusBar().showMessage("Nothing to export yet")
            return
        try:
            out = self._reporter.default_report_dir(self._cfg.export_dir)
            written = self._reporter.export(self._latest_run.data, out)
            self.statusBar().showMessage(f"Report exported: {out} ({len(written)} files)")
        except OSError as e:
            self._on_worker_error(str(e))

    def _on_worker_error(self, msg: str) -> None:
        logger.error("worker error: %s", msg)
        self.statusBar().showMessage(f"Error: {msg}")
