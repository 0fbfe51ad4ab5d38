from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from reclaim_toolkit.models.config import ReclaimConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigPaths:
    path: Path


class ConfigService:
    def __init__(self, paths: ConfigPaths | None = None) -> None:
        self.paths = paths or ConfigPaths(path=self.default_path())

    @staticmethod
    def default_path() -> Path:
        xdg = os.environ.get("XDG_CONFIG_HOME")
        if xdg:
            base = Path(xdg)
        elif os.name == "nt" and os.environ.get("APPDATA"):
            base = Path(os.environ["APPDATA"])
        else:
            base = Path.home() / ".config"
        return base / "reclaim_toolkit" / "config.json"

    def load(self) -> dict[str, Any]:
        """Raw settings from disk; a missing or unreadable file means no settings."""
        try:
            raw = json.loads(self.paths.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("ignoring unreadable config %s: %s", self.paths.path, e)
            return {}
        if not isinstance(raw, dict):
            logger.warning("ignoring config %s: top level is not an object", self.paths.path)
            return {}
        return raw

    def load_config(self, overrides: dict[str, Any] | None = None) -> ReclaimConfig:
        cfg = ReclaimConfig.from_dict(self.load())
        if overrides:
            cfg = ReclaimConfig.from_dict(overrides, base=cfg)
        return cfg

    def save(self, cfg: dict[str, Any]) -> None:
        target = self.paths.path
        target.parent.mkdir(parents=True, exist_ok=True)
        staging = target.with_name(target.name + ".tmp")
        staging.write_text(json.dumps(cfg, ensure_ascii=False, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(staging, target)
        logger.debug("config saved to %s", target)

    def save_config(self, cfg: ReclaimConfig) -> None:
        self.save(cfg.to_dict())
