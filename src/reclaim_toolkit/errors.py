from __future__ import annotations


class ReclaimError(Exception):
    """Base class for every error raised by reclaim_toolkit."""


class TraversalError(ReclaimError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class WalkAborted(TraversalError):
    """Raised by a walk running with OnError.ABORT at its first unreadable node."""


class ScanRootInaccessible(ReclaimError):
    """The primary scan root cannot even be listed. The only fatal condition."""

    def __init__(self, root: str, reason: str) -> None:
        super().__init__(f"scan root inaccessible: {root}: {reason}")
        self.root = root
        self.reason = reason


class VolumeUnavailable(ReclaimError):
    def __init__(self, volume_id: str, reason: str) -> None:
        super().__init__(f"volume unavailable: {volume_id}: {reason}")
        self.volume_id = volume_id
        self.reason = reason


class ActionFailed(ReclaimError):
    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class RelocationFailed(ReclaimError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
