from datetime import datetime, timedelta

import pytest

from filetrack.services import audit
from filetrack.services.errors import NotFoundError


def test_record_requires_existing_file(db, people):
    with pytest.raises(NotFoundError):
        audit.record_movement(db, "THDC-F-1999-0001", "Uma", "Created")


def test_list_for_file_is_newest_first(db, it_file):
    base = datetime(2026, 1, 5, 9, 0)
    for i, action in enumerate(["Step one", "Step two", "Step three"]):
        audit.record_movement(db, it_file.code, "Uma", action, at=base + timedelta(minutes=i))

    actions = [m.action for m in audit.list_for_file(db, it_file.code)]
    # The creation entry is stamped "now", after the fixed 2026-01-05 entries
    assert actions[1:] == ["Step three", "Step two", "Step one"]


def test_default_icon_follows_action(db, it_file):
    m = audit.record_movement(db, it_file.code, "Uma", audit.ACTION_REJECTED)
    assert m.icon == "❌"
    custom = audit.record_movement(db, it_file.code, "Uma", "Scanned", icon="🔍")
    assert custom.icon == "🔍"


def test_integrity_hash_detects_tampering(db, it_file):
    m = audit.record_movement(db, it_file.code, "Uma", "Checked", remarks="ok")
    assert m.integrity_hash
    assert audit.verify_movement(m)

    m.remarks = "edited behind the ledger's back"
    assert not audit.verify_movement(m)


def test_correction_is_stamped_and_rehashed(db, it_file, people):
    m = audit.record_movement(db, it_file.code, "Uma", "Checked", remarks="typo")
    old_hash = m.integrity_hash

    fixed = audit.correct_movement(db, m, {"remarks": "fixed"}, corrected_by="Sam")

    assert fixed.remarks == "fixed"
    assert fixed.corrected_by == "Sam"
    assert fixed.corrected_at is not None
    assert fixed.integrity_hash != old_hash
    assert audit.verify_movement(fixed)


def test_correction_ignores_null_fields(db, it_file):
    m = audit.record_movement(db, it_file.code, "Uma", "Checked", remarks="typo")

    fixed = audit.correct_movement(db, m, {"action": None, "icon": None, "remarks": "fixed"}, corrected_by="Ian")

    assert fixed.action == "Checked"
    assert fixed.icon is not None
    assert fixed.remarks == "fixed"
    assert audit.verify_movement(fixed)


def test_list_movements_filters_and_limits(db, it_file):
    base = datetime(2026, 2, 1, 8, 0)
    for i in range(5):
        audit.record_movement(db, it_file.code, "Bob" if i % 2 else "Uma", "Touched", at=base + timedelta(hours=i))

    assert len(audit.list_movements(db, limit=2)) == 2
    by_bob = audit.list_movements(db, user="Bob")
    assert {m.user for m in by_bob} == {"Bob"}
    window = audit.list_movements(db, since=base + timedelta(hours=1), until=base + timedelta(hours=3))
    assert len(window) == 3


def test_get_movement_unknown_id(db):
    with pytest.raises(NotFoundError):
        audit.get_movement(db, "not-a-uuid")
