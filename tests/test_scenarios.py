# tests/test_scenarios.py
from __future__ import annotations

from endaxis_core.events.payloads import WarningPayload
from rotation_planner.core.services import PlannerServices


def _warnings(services: PlannerServices):
    return [ev.payload for ev in services.ctx.bus.drain() if isinstance(ev.payload, WarningPayload)]


def test_initial_scenario_exists(services: PlannerServices) -> None:
    items = services.scenarios.list_scenarios()
    assert len(items) == 1
    assert items[0].name == "方案 1"
    assert services.scenarios.active_id == items[0].id


def test_add_and_switch_capture_state(services: PlannerServices, make_action) -> None:
    ctx = services.ctx
    first = services.scenarios.active_id
    a = services.timeline.add_skill_to_track("alpha", make_action(), 3.0)

    added = services.scenarios.add_scenario()
    assert added is not None and added.name == "方案 2"
    assert services.scenarios.active_id == added.id
    assert all(t.id is None and t.actions == [] for t in ctx.tracks)
    assert services.history.size == 1

    ctx.tracks[0].id = "gamma"
    services.timeline.add_skill_to_track("gamma", make_action(), 1.0)

    assert services.scenarios.switch_scenario(first)
    assert ctx.find_action(a.instance_id) is not None
    assert services.history.size == 1 and not services.history.can_undo()

    assert services.scenarios.switch_scenario(added.id)
    assert ctx.tracks[0].id == "gamma"
    assert len(ctx.tracks[0].actions) == 1


def test_switch_to_active_or_missing_is_noop(services: PlannerServices) -> None:
    assert services.scenarios.switch_scenario(services.scenarios.active_id) is False
    assert services.scenarios.switch_scenario("sc_ghost") is False


def test_switch_clears_selection_and_linking(services: PlannerServices, make_action) -> None:
    a = services.timeline.add_skill_to_track("alpha", make_action(), 0.0)
    services.selection.select_action(a.instance_id)
    services.linking.start_linking()
    services.scenarios.add_scenario("B")
    assert services.ctx.selection.selected_action_id is None
    assert not services.ctx.linking.active


def test_duplicate_is_deep_copy_with_suffix(services: PlannerServices, make_action) -> None:
    ctx = services.ctx
    src_id = services.scenarios.active_id
    a = services.timeline.add_skill_to_track("alpha", make_action(), 3.0)

    dup = services.scenarios.duplicate_scenario(src_id)
    assert dup is not None
    assert dup.name == "方案 1 (副本)"
    assert services.scenarios.active_id == dup.id
    assert [s.id for s in ctx.scenarios] == [src_id, dup.id]

    copied = ctx.find_action(a.instance_id)[1]
    services.timeline.move_action(copied.instance_id, 50.0)

    services.scenarios.switch_scenario(src_id)
    assert ctx.find_action(a.instance_id)[1].start_time == 3.0


def test_scenario_limit_is_policy_rejection(services: PlannerServices) -> None:
    for _ in range(9):
        assert services.scenarios.add_scenario() is not None
    services.ctx.bus.drain()

    assert services.scenarios.add_scenario() is None
    assert services.scenarios.duplicate_scenario(services.scenarios.active_id) is None
    assert len(services.ctx.scenarios) == 10
    assert [w.code for w in _warnings(services)] == ["scenario.limit", "scenario.limit"]


def test_delete_last_scenario_rejected(services: PlannerServices) -> None:
    only = services.scenarios.active_id
    services.ctx.bus.drain()
    assert services.scenarios.delete_scenario(only) is False
    assert len(services.ctx.scenarios) == 1
    assert [w.code for w in _warnings(services)] == ["scenario.last"]


def test_delete_active_switches_to_neighbor(services: PlannerServices, make_action) -> None:
    ctx = services.ctx
    first = services.scenarios.active_id
    services.timeline.add_skill_to_track("alpha", make_action(), 3.0)
    second = services.scenarios.add_scenario().id
    third = services.scenarios.add_scenario().id

    services.scenarios.switch_scenario(second)
    assert services.scenarios.delete_scenario(second)
    assert services.scenarios.active_id == third
    assert [s.id for s in ctx.scenarios] == [first, third]

    assert services.scenarios.delete_scenario(third)
    assert services.scenarios.active_id == first
    assert len(ctx.tracks[0].actions) == 1


def test_delete_inactive_keeps_active(services: PlannerServices) -> None:
    first = services.scenarios.active_id
    second = services.scenarios.add_scenario().id
    assert services.scenarios.delete_scenario(first)
    assert services.scenarios.active_id == second
    assert services.scenarios.delete_scenario("sc_ghost") is False


def test_delete_inactive_keeps_history_and_selection(services: PlannerServices, make_action) -> None:
    """删除非当前方案不重置当前方案的撤销栈，也不清空选择。"""
    other = services.scenarios.add_scenario().id
    first = services.scenarios.list_scenarios()[0].id
    services.scenarios.switch_scenario(first)

    a = services.timeline.add_skill_to_track("alpha", make_action(), 2.0)
    services.selection.select_action(a.instance_id)
    assert services.history.can_undo()
    size_before = services.history.size

    services.ctx.bus.drain()
    assert services.scenarios.delete_scenario(other)

    assert services.history.can_undo()
    assert services.history.size == size_before
    assert services.ctx.selection.selected_action_id == a.instance_id
    assert services.ctx.find_action(a.instance_id) is not None
    assert [e.type.value for e in services.ctx.bus.drain()] == ["SCENARIO_CHANGED"]

    assert services.undo()
    assert services.ctx.find_action(a.instance_id) is None


def test_rename_scenario(services: PlannerServices) -> None:
    sid = services.scenarios.active_id
    assert services.scenarios.rename_scenario(sid, "  开荒  ")
    assert services.ctx.find_scenario(sid).name == "开荒"
    assert services.scenarios.rename_scenario(sid, "") is False
    assert services.scenarios.rename_scenario("sc_ghost", "x") is False
