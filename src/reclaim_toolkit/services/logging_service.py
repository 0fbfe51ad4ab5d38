from __future__ import annotations

import logging
import sys
from pathlib import Path

from reclaim_toolkit.models.config import ReclaimConfig
from reclaim_toolkit.services.log_rotate_service import LogRotateService

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
_HANDLER_TAG = "_reclaim_toolkit"


def configure_logging(cfg: ReclaimConfig, verbose: bool = False, console: bool = True) -> Path | None:
    """Console plus file transcript on the package logger. Safe to call again."""
    root = logging.getLogger("reclaim_toolkit")
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        if getattr(h, _HANDLER_TAG, False):
            root.removeHandler(h)
            h.close()

    fmt = logging.Formatter(LOG_FORMAT)
    if console:
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(logging.DEBUG if verbose else logging.INFO)
        ch.setFormatter(fmt)
        setattr(ch, _HANDLER_TAG, True)
        root.addHandler(ch)

    log_path = Path(cfg.log_path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        res = LogRotateService(
            max_bytes=cfg.log_max_bytes,
            keep_archives=cfg.log_keep_archives,
        ).rotate_if_needed(log_path)
        fh = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as e:
        root.warning("transcript disabled, cannot open %s: %s", log_path, e)
        return None

    fh.setLevel(logging.DEBUG)
    fh.setFormatter(fmt)
    setattr(fh, _HANDLER_TAG, True)
    root.addHandler(fh)
    if res.rotated:
        root.info("previous transcript archived to %s", res.archived_path)
    return log_path
