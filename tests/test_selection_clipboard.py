# tests/test_selection_clipboard.py
from __future__ import annotations

import pytest

from rotation_planner.core.context import EffectAnchor
from rotation_planner.core.services import PlannerServices


def test_select_action_toggles_and_clears_other_categories(services: PlannerServices, make_action) -> None:
    a = services.timeline.add_skill_to_track("alpha", make_action(), 0.0)
    b = services.timeline.add_skill_to_track("beta", make_action(), 0.0)
    services.selection.select_action(a.instance_id)
    services.linking.start_linking()
    conn = services.linking.confirm_linking(b.instance_id)

    sel = services.ctx.selection
    assert services.selection.select_connection(conn.id)
    assert sel.selected_action_id is None and sel.selected_connection_id == conn.id

    assert services.selection.select_action(a.instance_id) == a.instance_id
    assert sel.selected_connection_id is None
    assert sel.multi_selected_ids == {a.instance_id}

    assert services.selection.select_action(a.instance_id) is None
    assert sel.action_targets() == set()


def test_set_multi_selection_primary_only_when_single(services: PlannerServices, make_action) -> None:
    a = services.timeline.add_skill_to_track("alpha", make_action(), 0.0)
    b = services.timeline.add_skill_to_track("beta", make_action(), 0.0)
    sel = services.ctx.selection

    services.selection.set_multi_selection([a.instance_id])
    assert sel.selected_action_id == a.instance_id

    services.selection.set_multi_selection([a.instance_id, b.instance_id, "ghost"])
    assert sel.selected_action_id is None
    assert sel.multi_selected_ids == {a.instance_id, b.instance_id}


def test_select_effect_selects_owner(services: PlannerServices, make_action) -> None:
    a = services.timeline.add_skill_to_track("alpha", make_action(physicalAnomaly=[[{"type": "burn"}]]), 0.0)
    assert services.selection.select_effect(a.instance_id, EffectAnchor(0, 0))
    sel = services.ctx.selection
    assert sel.selected_action_id == a.instance_id
    assert sel.selected_effect is not None and sel.selected_effect.anchor == EffectAnchor(0, 0)
    assert services.selection.select_effect(a.instance_id, EffectAnchor(3, 0)) is False


def test_select_track_cancels_linking(services: PlannerServices, make_action) -> None:
    a = services.timeline.add_skill_to_track("alpha", make_action(), 0.0)
    services.selection.select_action(a.instance_id)
    services.linking.start_linking()
    services.selection.select_track("beta")
    assert services.ctx.active_track_id == "beta"
    assert not services.ctx.linking.active
    assert services.ctx.selection.selected_action_id is None


def test_paste_preserves_relative_offsets(services: PlannerServices, make_action) -> None:
    """
    t=10 与 t=12 的两个动作，粘贴到光标 t=20 -> 新动作在 t=20 与 t=22。
    """
    tl = services.timeline
    a = tl.add_skill_to_track("alpha", make_action(), 10.0)
    b = tl.add_skill_to_track("beta", make_action(), 12.0)
    services.selection.set_multi_selection([a.instance_id, b.instance_id])
    assert services.selection.copy_selection() == 2

    new_ids = services.selection.paste_selection(cursor_time=20.0)
    assert len(new_ids) == 2
    assert a.instance_id not in new_ids and b.instance_id not in new_ids

    ctx = services.ctx
    starts = sorted(ctx.find_action(i)[1].start_time for i in new_ids)
    assert starts == [20.0, 22.0]
    # 放回原轨道下标
    assert ctx.find_action(new_ids[0])[0] == 0
    assert ctx.find_action(new_ids[1])[0] == 1
    assert ctx.selection.multi_selected_ids == set(new_ids)


def test_paste_uses_context_cursor_then_default_offset(services: PlannerServices, make_action) -> None:
    a = services.timeline.add_skill_to_track("alpha", make_action(), 5.0)
    services.selection.select_action(a.instance_id)
    services.selection.copy_selection()

    [first] = services.selection.paste_selection()
    assert services.ctx.find_action(first)[1].start_time == pytest.approx(7.0)

    services.selection.set_cursor_time(1.0)
    [second] = services.selection.paste_selection()
    assert services.ctx.find_action(second)[1].start_time == pytest.approx(1.0)

    services.selection.set_cursor_time(None)
    services.ctx.clipboard.base_time = 5.0
    [third] = services.selection.paste_selection(cursor_time=0.0)
    assert services.ctx.find_action(third)[1].start_time == 0.0


def test_paste_clamps_negative_start(services: PlannerServices, make_action) -> None:
    a = services.timeline.add_skill_to_track("alpha", make_action(), 1.0)
    b = services.timeline.add_skill_to_track("alpha", make_action(), 6.0)
    services.selection.set_multi_selection([a.instance_id, b.instance_id])
    services.selection.copy_selection()
    services.ctx.clipboard.base_time = 5.0
    ids = services.selection.paste_selection(cursor_time=0.0)
    starts = sorted(services.ctx.find_action(i)[1].start_time for i in ids)
    assert starts == [0.0, 1.0]


def test_paste_remaps_connections_and_effect_anchors(services: PlannerServices, make_action) -> None:
    tl, sel, link = services.timeline, services.selection, services.linking
    a = tl.add_skill_to_track("alpha", make_action(physicalAnomaly=[[{"type": "burn"}]]), 0.0)
    b = tl.add_skill_to_track("beta", make_action(), 1.0)
    c = tl.add_skill_to_track("gamma", make_action(), 2.0)

    sel.select_action(a.instance_id)
    link.start_linking(EffectAnchor(0, 0))
    link.confirm_linking(b.instance_id)
    sel.select_action(b.instance_id)
    link.start_linking()
    link.confirm_linking(c.instance_id)

    sel.set_multi_selection([a.instance_id, b.instance_id])
    sel.copy_selection()
    # 只复制两端都在选中集合里的连线
    assert len(services.ctx.clipboard.connections) == 1

    commits = services.history.size
    new_ids = sel.paste_selection(cursor_time=30.0)
    assert services.history.size == commits + 1

    ctx = services.ctx
    new_a = next(ctx.find_action(i)[1] for i in new_ids if ctx.find_action(i)[0] == 0)
    new_b = next(ctx.find_action(i)[1] for i in new_ids if ctx.find_action(i)[0] == 1)
    pasted = [x for x in ctx.connections if x.from_id == new_a.instance_id]
    assert len(pasted) == 1
    conn = pasted[0]
    assert conn.to_id == new_b.instance_id
    assert conn.from_effect_id == new_a.physical_anomaly[0][0].id
    assert conn.from_effect_id != a.physical_anomaly[0][0].id
    assert len({x.id for x in ctx.connections}) == len(ctx.connections)


def test_copy_without_selection_keeps_clipboard(services: PlannerServices) -> None:
    assert services.selection.copy_selection() == 0
    assert services.ctx.clipboard is None
    assert services.selection.paste_selection() == []
