# tests/test_persistence.py
from __future__ import annotations

import json
from pathlib import Path

from endaxis_core.event_bus import EventBus
from endaxis_core.event_types import EventType
from endaxis_core.events.payloads import SelectionChangedPayload, StateCommittedPayload
from endaxis_core.idgen import SequentialIdGenerator
from rotation_planner.core.config import PlannerConfig
from rotation_planner.core.persistence import AutoSaver, LocalSnapshotStore
from rotation_planner.core.services import build_planner

from conftest import sample_game_data_dict


def test_snapshot_store_missing_or_corrupt_is_none(tmp_path: Path) -> None:
    store = LocalSnapshotStore(tmp_path, key="endaxis_autosave")
    assert store.load() is None

    store.path.write_text("{broken", encoding="utf-8")
    assert store.load() is None

    store.path.write_text("[1, 2]", encoding="utf-8")
    assert store.load() is None


def test_snapshot_store_save_load_clear(tmp_path: Path) -> None:
    store = LocalSnapshotStore(tmp_path / "local_storage", key="my key/../x")
    assert store.path.parent == tmp_path / "local_storage"
    assert store.save({"a": 1})
    assert store.load() == {"a": 1}
    store.clear()
    assert store.load() is None


def test_snapshot_store_write_failure_is_swallowed(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")
    store = LocalSnapshotStore(blocker / "sub", key="k")
    assert store.save({"a": 1}) is False


def test_autosaver_writes_once_per_flush(tmp_path: Path) -> None:
    bus = EventBus()
    store = LocalSnapshotStore(tmp_path, key="k")
    calls = []

    def build():
        calls.append(1)
        return {"n": len(calls)}

    saver = AutoSaver(bus=bus, store=store, build_document=build)
    saver.start()

    bus.post_payload(EventType.SELECTION_CHANGED, SelectionChangedPayload(None, [], None))
    bus.dispatch_pending()
    assert saver.flush() is False

    for i in range(3):
        bus.post_payload(EventType.STATE_COMMITTED, StateCommittedPayload(reason="x", history_index=i, history_size=i + 1))
    bus.dispatch_pending()
    assert saver.pending
    assert saver.flush() is True
    assert calls == [1]
    assert store.load() == {"n": 1}
    assert saver.flush() is False

    saver.stop()
    bus.post_payload(EventType.STATE_COMMITTED, StateCommittedPayload(reason="x", history_index=0, history_size=1))
    bus.dispatch_pending()
    assert not saver.pending


def test_autosaver_build_failure_is_logged(tmp_path: Path, caplog) -> None:
    bus = EventBus()

    def build():
        raise RuntimeError("boom")

    saver = AutoSaver(bus=bus, store=LocalSnapshotStore(tmp_path, key="k"), build_document=build)
    saver.start()
    bus.post_payload(EventType.STATE_COMMITTED, StateCommittedPayload(reason="x", history_index=0, history_size=1))
    bus.dispatch_pending()
    assert saver.flush() is False
    assert "autosave: build document failed" in caplog.text


def test_build_planner_fresh_then_restore(tmp_path: Path) -> None:
    game = tmp_path / "gamedata.json"
    game.write_text(json.dumps(sample_game_data_dict()), encoding="utf-8")

    planner = build_planner(app_data_dir=tmp_path, game_data_path=game, ids=SequentialIdGenerator())
    assert [c.id for c in planner.ctx.roster] == ["alpha", "beta", "gamma"]
    assert len(planner.ctx.scenarios) == 1
    assert planner.history.size == 1

    planner.timeline.change_track_operator(0, "alpha")
    tpl = planner.library.get_template("alpha_attack")
    inst = planner.timeline.add_skill_to_track("alpha", tpl, 6.0)
    planner.bus.dispatch_pending()
    assert planner.flush_autosave()

    restored = build_planner(app_data_dir=tmp_path, game_data_path=game, ids=SequentialIdGenerator(start=1000))
    assert restored.ctx.find_action(inst.instance_id) is not None
    assert restored.history.size == 1


def test_build_planner_ignores_bad_snapshot_and_game_data(tmp_path: Path) -> None:
    local = tmp_path / "local_storage"
    local.mkdir()
    (local / "endaxis_autosave.json").write_text(json.dumps({"tracks": []}), encoding="utf-8")
    bad_game = tmp_path / "gamedata.json"
    bad_game.write_text("not json", encoding="utf-8")

    planner = build_planner(app_data_dir=tmp_path, game_data_path=bad_game)
    assert planner.ctx.roster == []
    assert len(planner.ctx.scenarios) == 1


def test_build_planner_without_autosave(tmp_path: Path) -> None:
    planner = build_planner(app_data_dir=tmp_path, config=PlannerConfig(autosave=False))
    assert planner.autosaver is None
    assert planner.flush_autosave() is False
