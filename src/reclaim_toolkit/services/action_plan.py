from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from reclaim_toolkit.models.cleanup import CleanupAction, ServiceState

UPDATE_SERVICE = "wuauserv"
# Task set configured once with `cleanmgr /sageset:<n>`.
CLEANMGR_PROFILE = 64
# Shared temp dirs hold live sockets and session dirs; only stale entries go.
TEMP_MIN_AGE_DAYS = 7
TEMP_EXCLUDE = ("systemd-private-*", "snap-private-tmp", "tmux-*", "ssh-*", "pulse-*")


def default_actions(system_volume: str | None = None, skip: set[str] | None = None) -> list[CleanupAction]:
    if os.name == "nt":
        actions = windows_actions(system_volume)
    else:
        actions = posix_actions()
    skip = skip or set()
    return [a for a in actions if a.name not in skip]


def windows_actions(system_volume: str | None = None) -> list[CleanupAction]:
    windir = os.environ.get("WINDIR") or os.environ.get("SYSTEMROOT") or r"C:\Windows"
    user_temp = os.environ.get("TEMP") or tempfile.gettempdir()
    drive = (system_volume or os.environ.get("SystemDrive", "C:")).rstrip("\\")
    update_cache = os.path.join(windir, "SoftwareDistribution", "Download")

    return [
        CleanupAction.delete_paths("user temp", user_temp),
        CleanupAction.delete_paths("system temp", os.path.join(windir, "Temp")),
        # The cache is locked while the update service runs.
        CleanupAction.service("stop update service", UPDATE_SERVICE, ServiceState.STOPPED),
        CleanupAction.delete_paths("update cache", update_cache),
        CleanupAction.service("start update service", UPDATE_SERVICE, ServiceState.RUNNING),
        CleanupAction.delete_paths(
            "log files",
            os.path.join(windir, "Logs", "CBS"),
            os.path.join(windir, "Logs", "DISM"),
            os.path.join(windir, "Panther"),
            patterns=("*.log", "*.cab", "*.etl"),
        ),
        CleanupAction.command("disable hibernation", "powercfg", "/hibernate", "off"),
        CleanupAction.command(
            "delete shadow copies",
            "vssadmin",
            "delete",
            "shadows",
            f"/for={drive}",
            "/all",
            "/quiet",
        ),
        CleanupAction.command("system cleanup utility", "cleanmgr", f"/sagerun:{CLEANMGR_PROFILE}"),
        CleanupAction.command(
            "empty recycle bin",
            "powershell",
            "-NoProfile",
            "-Command",
            f"Clear-RecycleBin -DriveLetter {drive.rstrip(':')} -Force -ErrorAction Stop",
        ),
    ]


def posix_actions() -> list[CleanupAction]:
    home = Path.home()
    user_temp = tempfile.gettempdir()
    temp_filters = dict(exclude=TEMP_EXCLUDE, min_age_days=TEMP_MIN_AGE_DAYS, skip_hidden=True)
    actions = [
        CleanupAction.delete_paths("user temp", user_temp, **temp_filters),
        CleanupAction.delete_paths("system temp", *sorted({"/tmp", "/var/tmp"} - {user_temp}), **temp_filters),
        CleanupAction.delete_paths(
            "log files",
            "/var/log",
            patterns=("*.gz", "*.1", "*.old"),
        ),
        CleanupAction.delete_paths(
            "empty trash",
            str(home / ".local" / "share" / "Trash" / "files"),
            str(home / ".local" / "share" / "Trash" / "info"),
        ),
    ]
    if shutil.which("journalctl"):
        actions.append(CleanupAction.command("vacuum journal", "journalctl", "--vacuum-time=7d"))
    return actions
