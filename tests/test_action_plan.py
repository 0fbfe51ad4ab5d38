"""
Tests for reclaim_toolkit/services/action_plan.py.
"""

from reclaim_toolkit.models.cleanup import ActionKind, ServiceState
from reclaim_toolkit.services import action_plan


def test_windows_plan_order(monkeypatch):
    monkeypatch.setenv("WINDIR", "C:\\Windows")
    names = [a.name for a in action_plan.windows_actions("D:")]
    assert names == [
        "user temp",
        "system temp",
        "stop update service",
        "update cache",
        "start update service",
        "log files",
        "disable hibernation",
        "delete shadow copies",
        "system cleanup utility",
        "empty recycle bin",
    ]


def test_update_service_brackets_cache_clear():
    actions = action_plan.windows_actions("C:")
    stop, cache, start = actions[2:5]
    assert stop.kind == ActionKind.SERVICE_TOGGLE and stop.target.state == ServiceState.STOPPED
    assert cache.kind == ActionKind.PATH_DELETION
    assert start.target.state == ServiceState.RUNNING
    assert stop.target.service == start.target.service == action_plan.UPDATE_SERVICE


def test_commands_target_the_system_volume():
    by_name = {a.name: a for a in action_plan.windows_actions("D:\\")}
    assert "/for=D:" in by_name["delete shadow copies"].target.argv
    assert by_name["system cleanup utility"].target.argv == ("cleanmgr", "/sagerun:64")


def test_skip_by_name(monkeypatch):
    monkeypatch.setattr(action_plan.os, "name", "posix")
    names = [a.name for a in action_plan.default_actions(skip={"log files", "empty trash"})]
    assert "log files" not in names
    assert "empty trash" not in names
    assert names[0] == "user temp"


def test_posix_actions_are_fresh_each_call():
    first = action_plan.posix_actions()
    second = action_plan.posix_actions()
    assert first[0] is not second[0]
    assert all(a.outcome is None for a in second)


def test_posix_temp_actions_only_touch_stale_entries():
    by_name = {a.name: a for a in action_plan.posix_actions()}
    for name in ("user temp", "system temp"):
        target = by_name[name].target
        assert target.min_age_days == action_plan.TEMP_MIN_AGE_DAYS > 0
        assert target.skip_hidden is True
        assert "systemd-private-*" in target.exclude
