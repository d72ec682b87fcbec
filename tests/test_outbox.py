from filetrack.models.models import Movement
from filetrack.services import audit
from filetrack.services.outbox import SideEffects


def test_dispatch_runs_in_order_and_counts_failures(db):
    calls = []

    def boom(session):
        calls.append("boom")
        raise RuntimeError("smtp down")

    effects = SideEffects("THDC-F-2026-0001")
    effects.add("first", lambda s: calls.append("first"))
    effects.add("second", boom)
    effects.add("third", lambda s: calls.append("third"))

    assert effects.labels == ["first", "second", "third"]
    assert effects.dispatch(db) == 1
    assert calls == ["first", "boom", "third"]


def test_dispatch_empties_the_queue(db):
    effects = SideEffects()
    effects.add("only", lambda s: None)
    assert len(effects) == 1
    effects.dispatch(db)
    assert len(effects) == 0
    assert effects.dispatch(db) == 0


def test_failed_effect_is_rolled_back_and_later_effects_still_commit(db, it_file):
    def half_written(session):
        session.add(Movement(file_code=it_file.code, user="x", action="never committed"))
        session.flush()
        raise RuntimeError("lost connection")

    effects = SideEffects(it_file.code)
    effects.add("broken", half_written)
    effects.add("ledger", lambda s: audit.record_movement(s, it_file.code, "Uma", "Kept"))

    assert effects.dispatch(db) == 1
    actions = {m.action for m in audit.list_for_file(db, it_file.code)}
    assert "Kept" in actions
    assert "never committed" not in actions
