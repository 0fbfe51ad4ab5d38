from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable

from reclaim_toolkit.collectors.directory_size_collector import DirectorySizeAggregator
from reclaim_toolkit.collectors.large_file_collector import LargeFileScanner
from reclaim_toolkit.collectors.usage_collector import UsageReporter, system_volume
from reclaim_toolkit.errors import ScanRootInaccessible
from reclaim_toolkit.models.cleanup import CleanupAction
from reclaim_toolkit.models.common import CollectorResult
from reclaim_toolkit.models.config import ReclaimConfig
from reclaim_toolkit.models.filesystem import LargeFileReport
from reclaim_toolkit.models.run import RunReport
from reclaim_toolkit.services.action_plan import default_actions
from reclaim_toolkit.services.cleanup_service import CleanupActionRunner
from reclaim_toolkit.services.relocation_service import RelocationPlanner

logger = logging.getLogger(__name__)


class RunService:
    """Runs the stages in order and returns every report it could produce.

    usage (before) -> cleanup -> large files -> directories -> relocation -> usage (after)
    """

    def __init__(
        self,
        cfg: ReclaimConfig,
        actions: list[CleanupAction] | None = None,
        usage: UsageReporter | None = None,
        runner: CleanupActionRunner | None = None,
        scanner: LargeFileScanner | None = None,
        aggregator: DirectorySizeAggregator | None = None,
        planner: RelocationPlanner | None = None,
        cancel_event: threading.Event | None = None,
        progress: Callable[[str], None] | None = None,
    ) -> None:
        self.cfg = cfg
        self.cancel_event = cancel_event or threading.Event()
        self.volume = cfg.target_volume or system_volume()
        self.actions = actions
        self.usage = usage or UsageReporter()
        self.runner = runner or CleanupActionRunner(
            dry_run=cfg.dry_run,
            retry_in_use=cfg.retry_in_use,
            cancel_event=self.cancel_event,
        )
        self.scanner = scanner or LargeFileScanner(cfg.walk_policy, cancel_event=self.cancel_event)
        self.aggregator = aggregator or DirectorySizeAggregator(
            cfg.walk_policy,
            workers=cfg.workers,
            cancel_event=self.cancel_event,
        )
        self.planner = planner or RelocationPlanner(cfg.relocation_subfolder, cancel_event=self.cancel_event)
        self._progress = progress

    def cancel(self) -> None:
        self.cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def run(self, progress: Callable[[str], None] | None = None) -> RunReport:
        if progress is not None:
            self._progress = progress
        cfg = self.cfg
        report = RunReport(started_at=datetime.now())
        logger.info("run started: volume=%s roots=%s dry_run=%s", self.volume, cfg.scan_roots, cfg.dry_run)

        self._stage("usage (before)")
        report.usage_before = self.usage.sample([self.volume])

        if cfg.cleanup:
            self._stage("cleanup")
            actions = self.actions
            if actions is None:
                actions = default_actions(self.volume, skip=set(cfg.skip_actions))
            report.cleanup = self.runner.run(actions)

        try:
            if not self.cancelled:
                self._stage("large files")
                report.large_files = self.scanner.scan_many(cfg.scan_roots, cfg.large_file_threshold_bytes)
            if not self.cancelled:
                self._stage("directories")
                report.directories = self.aggregator.aggregate_many(cfg.effective_aggregate_roots)
            if cfg.relocate and report.large_files is not None and not self.cancelled:
                self._stage("relocation")
                self._relocate(report, report.large_files)
        except ScanRootInaccessible as e:
            logger.error("%s", e)
            report.fatal = str(e)

        if self.cancelled:
            report.notes.append("run cancelled")

        self._stage("usage (after)")
        report.usage_after = self.usage.sample([self.volume])
        report.finished_at = datetime.now()

        freed = report.freed_bytes(self.volume)
        logger.info("run finished: status=%s freed=%s bytes", report.status, freed if freed is not None else "?")
        for row in report.summary():
            logger.info("  %-16s ok=%d skipped=%d failed=%d", row.category, row.ok, row.skipped, row.failed)
        return report

    def collect(self, progress: Callable[[str], None] | None = None) -> CollectorResult[RunReport]:
        report = self.run(progress)
        warnings: list[str] = []
        if report.fatal:
            warnings.append(report.fatal)
        for row in report.summary():
            if row.failed:
                warnings.append(f"{row.category}: {row.failed} failed")
        return CollectorResult(
            ts=report.finished_at or datetime.now(),
            status=report.status,
            warning_count=len(warnings),
            warnings=warnings,
            data=report,
        )

    def _relocate(self, report: RunReport, large_files: LargeFileReport) -> None:
        candidates = self.cfg.candidate_volumes
        if candidates is None:
            candidates = self.usage.candidate_volumes(self.volume)
        plan = self.planner.plan(large_files.records, candidates, source_volume=self.volume)
        if plan is None:
            report.notes.append("relocation skipped: no large files or no secondary volume")
            return
        report.relocation = self.planner.execute(plan)

    def _stage(self, name: str) -> None:
        logger.info("stage: %s", name)
        if self._progress is not None:
            self._progress(name)
