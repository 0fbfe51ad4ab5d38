from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from reclaim_toolkit.collectors.directory_size_collector import DirectorySizeAggregator
from reclaim_toolkit.collectors.large_file_collector import LargeFileScanner
from reclaim_toolkit.errors import ScanRootInaccessible
from reclaim_toolkit.models.common import GIB
from reclaim_toolkit.models.config import ReclaimConfig
from reclaim_toolkit.models.run import RunReport
from reclaim_toolkit.services.config_service import ConfigPaths, ConfigService
from reclaim_toolkit.services.logging_service import configure_logging
from reclaim_toolkit.services.report_service import (
    DIRECTORY_FIELDS,
    LARGE_FILE_FIELDS,
    ReportService,
    directory_rows,
    large_file_rows,
)
from reclaim_toolkit.services.run_service import RunService

logger = logging.getLogger("reclaim_toolkit.cli")

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reclaim-toolkit",
        description="Disk space reclamation and reporting",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--config", default=None, help="JSON config file (default: per-user config)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug output on the console")

    sub = parser.add_subparsers(dest="command", required=True)

    def add_scan_opts(p: argparse.ArgumentParser) -> None:
        p.add_argument("--root", dest="roots", action="append", default=None, help="Scan root (repeatable)")
        p.add_argument("--follow-symlinks", action="store_true", default=None)
        p.add_argument("--abort-on-error", action="store_true", help="Stop a walk at the first unreadable node")
        p.add_argument("--workers", type=int, default=None, help="Threads for directory aggregation")
        p.add_argument("--export-dir", default=None, help="Where CSV/HTML reports are written")

    p = sub.add_parser("run", help="Full run: usage, cleanup, scans, optional relocation, usage")
    add_scan_opts(p)
    p.add_argument("--volume", default=None, help="Target volume (default: system volume)")
    p.add_argument("--threshold-gb", type=float, default=None, help="Large file threshold in GiB")
    p.add_argument("--dry-run", action="store_true", default=None)
    p.add_argument("--no-cleanup", action="store_true")
    p.add_argument("--skip", action="append", default=None, help="Skip a cleanup action by name")
    p.add_argument("--relocate", action="store_true", default=None, help="Move large files to a secondary volume")
    p.add_argument("--destination", action="append", default=None, help="Candidate volume for relocation")

    p = sub.add_parser("scan", help="Large file inventory only")
    add_scan_opts(p)
    p.add_argument("--threshold-gb", type=float, default=None)

    p = sub.add_parser("dirs", help="Directory size inventory only")
    add_scan_opts(p)

    return parser


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    o: dict[str, Any] = {}
    if getattr(args, "roots", None):
        o["scan_roots"] = args.roots
        o["aggregate_roots"] = args.roots
    if getattr(args, "follow_symlinks", None):
        o["follow_symlinks"] = True
    if getattr(args, "abort_on_error", False):
        o["on_error"] = "abort"
    if getattr(args, "workers", None) is not None:
        o["workers"] = args.workers
    if getattr(args, "export_dir", None):
        o["export_dir"] = args.export_dir
    if getattr(args, "volume", None):
        o["target_volume"] = args.volume
    if getattr(args, "threshold_gb", None) is not None:
        o["large_file_threshold_bytes"] = int(args.threshold_gb * GIB)
    if getattr(args, "dry_run", None):
        o["dry_run"] = True
    if getattr(args, "no_cleanup", False):
        o["cleanup"] = False
    if getattr(args, "skip", None):
        o["skip_actions"] = args.skip
    if getattr(args, "relocate", None):
        o["relocate"] = True
    if getattr(args, "destination", None):
        o["candidate_volumes"] = args.destination
    return o


def command_run(cfg: ReclaimConfig, reporter: ReportService) -> int:
    run = RunService(cfg).run()
    out = reporter.default_report_dir(cfg.export_dir)
    for path in reporter.export(run, out):
        logger.info("wrote %s", path)
    print(reporter.build_report(run).text)
    return exit_code(run)


def command_scan(cfg: ReclaimConfig, reporter: ReportService) -> int:
    r = LargeFileScanner(cfg.walk_policy).scan_many(cfg.scan_roots, cfg.large_file_threshold_bytes)
    out = reporter.default_report_dir(cfg.export_dir)
    reporter.write_csv(out / "large_files.csv", LARGE_FILE_FIELDS, large_file_rows(r))
    for row in large_file_rows(r):
        print(f"{row['size_gib']:>10.2f} GiB  {row['path']}")
    logger.info("%d large files, %d traversal errors; CSV in %s", len(r.records), r.errors.count, out)
    return EXIT_PARTIAL if (r.errors.count or r.aborted) else EXIT_OK


def command_dirs(cfg: ReclaimConfig, reporter: ReportService) -> int:
    r = DirectorySizeAggregator(cfg.walk_policy, workers=cfg.workers).aggregate_many(cfg.effective_aggregate_roots)
    out = reporter.default_report_dir(cfg.export_dir)
    reporter.write_csv(out / "directories.csv", DIRECTORY_FIELDS, directory_rows(r))
    for row in directory_rows(r)[:50]:
        print(f"{row['size_gib']:>10.2f} GiB {row['size_mib']:>12.2f} MiB {row['file_count']:>9}  {row['path']}")
    logger.info("%d directories, %d unreadable; CSV in %s", len(r.records), r.partial_count, out)
    return EXIT_PARTIAL if r.errors.count else EXIT_OK


def exit_code(run: RunReport) -> int:
    if run.fatal:
        return EXIT_FATAL
    if any(c.failed for c in run.summary()):
        return EXIT_PARTIAL
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    svc = ConfigService(ConfigPaths(path=Path(args.config).expanduser())) if args.config else ConfigService()
    try:
        cfg = svc.load_config(overrides_from_args(args))
    except ValueError as e:
        parser.error(str(e))

    configure_logging(cfg, verbose=args.verbose)
    reporter = ReportService()

    try:
        if args.command == "run":
            return command_run(cfg, reporter)
        if args.command == "scan":
            return command_scan(cfg, reporter)
        if args.command == "dirs":
            return command_dirs(cfg, reporter)
    except ScanRootInaccessible as e:
        logger.error("%s", e)
        return EXIT_FATAL
    raise ValueError(f"Unknown command: {args.command}")


if __name__ == "__main__":
    sys.exit(main())
