# tests/test_linking.py
from __future__ import annotations

from rotation_planner.core.context import EffectAnchor
from rotation_planner.core.services import PlannerServices


def _two_actions(services: PlannerServices, make_action):
    grid = [[{"type": "a"}, {"type": "b"}, {"type": "c"}]]
    a = services.timeline.add_skill_to_track("alpha", make_action(physicalAnomaly=grid), 0.0)
    b = services.timeline.add_skill_to_track("beta", make_action(physicalAnomaly=grid), 3.0)
    return a, b


def test_linking_dedupe_effect_to_action(services: PlannerServices, make_action) -> None:
    """
    A(效果锚点 2) -> B(无锚点) 连两次，只产生一条连线。
    """
    a, b = _two_actions(services, make_action)
    link = services.linking

    for _ in range(2):
        services.ctx.selection.selected_action_id = a.instance_id
        assert link.start_linking(EffectAnchor(0, 2))
        link.confirm_linking(b.instance_id)

    conns = services.ctx.connections
    assert len(conns) == 1
    assert conns[0].from_effect_id == a.physical_anomaly[0][2].id
    assert conns[0].from_effect_index == (0, 2)
    assert conns[0].to_effect_id is None
    assert not services.ctx.linking.active


def test_effect_id_assigned_lazily_and_stable(services: PlannerServices, make_action) -> None:
    a, b = _two_actions(services, make_action)
    assert a.physical_anomaly[0][1].id is not None  # 放置时已分配
    a.physical_anomaly[0][1].id = None  # 模拟旧数据

    services.ctx.selection.selected_action_id = a.instance_id
    services.linking.start_linking(EffectAnchor(0, 1))
    conn = services.linking.confirm_linking(b.instance_id, EffectAnchor(0, 0))
    assigned = a.physical_anomaly[0][1].id
    assert assigned and conn.from_effect_id == assigned
    assert conn.to_effect_id == b.physical_anomaly[0][0].id

    # 再连一次同样的端点：去重，ID 不变
    services.ctx.selection.selected_action_id = a.instance_id
    services.linking.start_linking(EffectAnchor(0, 1))
    assert services.linking.confirm_linking(b.instance_id, EffectAnchor(0, 0)) is None
    assert a.physical_anomaly[0][1].id == assigned


def test_dedupe_prefers_effect_id_over_position(services: PlannerServices, make_action) -> None:
    a, b = _two_actions(services, make_action)
    link = services.linking

    services.ctx.selection.selected_action_id = a.instance_id
    link.start_linking(EffectAnchor(0, 0))
    link.confirm_linking(b.instance_id)

    # 删掉第一个格子会级联删除锚定在它上面的连线
    services.timeline.remove_effect(a.instance_id, 0, 0)
    assert services.ctx.connections == []
    services.ctx.selection.selected_action_id = a.instance_id
    link.start_linking(EffectAnchor(0, 0))
    assert link.confirm_linking(b.instance_id) is not None
    services.ctx.connections[0].from_effect_index = (0, 1)

    # 记录的位置与当前锚点不同，但效果 ID 相同：仍视为重复
    services.ctx.selection.selected_action_id = a.instance_id
    link.start_linking(EffectAnchor(0, 0))
    assert link.confirm_linking(b.instance_id) is None
    assert len(services.ctx.connections) == 1


def test_self_link_same_granularity_rejected(services: PlannerServices, make_action) -> None:
    a, _b = _two_actions(services, make_action)
    link = services.linking
    size = services.history.size

    services.ctx.selection.selected_action_id = a.instance_id
    link.start_linking()
    assert link.confirm_linking(a.instance_id) is None

    services.ctx.selection.selected_action_id = a.instance_id
    link.start_linking(EffectAnchor(0, 1))
    assert link.confirm_linking(a.instance_id, EffectAnchor(0, 1)) is None
    assert services.history.size == size
    assert not link.active

    # 同一动作内不同效果之间可以连线
    services.ctx.selection.selected_action_id = a.instance_id
    link.start_linking(EffectAnchor(0, 0))
    assert link.confirm_linking(a.instance_id, EffectAnchor(0, 2)) is not None


def test_start_linking_toggle_and_requires_selection(services: PlannerServices, make_action) -> None:
    a, _b = _two_actions(services, make_action)
    link = services.linking
    assert link.start_linking() is False

    services.ctx.selection.selected_action_id = a.instance_id
    assert link.start_linking(EffectAnchor(0, 0)) is True
    assert link.start_linking(EffectAnchor(0, 0)) is False
    assert not link.active

    assert link.start_linking() is True
    assert link.start_linking(EffectAnchor(0, 1)) is True
    assert services.ctx.linking.source_anchor == EffectAnchor(0, 1)
    link.cancel_linking()
    assert not link.active
    assert services.ctx.connections == []


def test_confirm_to_missing_target_is_noop(services: PlannerServices, make_action) -> None:
    a, _b = _two_actions(services, make_action)
    services.ctx.selection.selected_action_id = a.instance_id
    services.linking.start_linking()
    assert services.linking.confirm_linking("inst_ghost") is None
    assert services.linking.confirm_linking(a.instance_id) is None
    assert services.ctx.connections == []


def test_consumption_flag(services: PlannerServices, make_action) -> None:
    a, b = _two_actions(services, make_action)
    services.ctx.selection.selected_action_id = a.instance_id
    services.linking.start_linking()
    conn = services.linking.confirm_linking(b.instance_id, is_consumption=True)
    assert conn.is_consumption is True
