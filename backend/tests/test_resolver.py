import json

import pytest
from sqlalchemy import event, select

from blockhunt.core.collection import CollectionStore
from blockhunt.core.errors import StorageError
from blockhunt.core.payload import build_scan_payload
from blockhunt.core.resolver import UnlockResolver, is_unlocked, process_scan
from blockhunt.extensions import db
from blockhunt.models.scan_record import ScanRecord


def _owned(user):
    return CollectionStore().owned_blocks(int(user.id))


def test_first_scan_unlocks_block(student, make_code, now):
    make_code("qr_1", "controls_if")

    outcome = process_scan(student.id, build_scan_payload("qr_1", "controls_if"), now=now)

    assert outcome.success
    assert outcome.result.is_new is True
    assert outcome.result.block_id == "controls_if"
    assert outcome.result.total_owned_count == 1
    assert outcome.message == "New block unlocked!"
    assert _owned(student) == {"controls_if"}


def test_rescan_is_idempotent(student, make_code, now):
    make_code("qr_1", "controls_if")
    text = build_scan_payload("qr_1", "controls_if")

    first = process_scan(student.id, text, now=now)
    second = process_scan(student.id, text, now=now)

    assert first.result.is_new is True
    assert second.success
    assert second.result.is_new is False
    assert second.result.total_owned_count == 1
    assert second.message == "You already have this block!"
    assert _owned(student) == {"controls_if"}


def test_scan_record_written_once_per_unlock(student, make_code, now):
    make_code("qr_1", "controls_if")
    text = build_scan_payload("qr_1", "controls_if")
    process_scan(student.id, text, now=now)
    process_scan(student.id, text, now=now)

    records = db.session.execute(select(ScanRecord)).scalars().all()
    assert len(records) == 1
    assert records[0].qr_code_id == "qr_1"


def test_unknown_code_leaves_collection_untouched(student, now):
    outcome = process_scan(student.id, build_scan_payload("qr_missing", "controls_if"), now=now)

    assert not outcome.success
    assert outcome.error.code == "unknown_code"
    assert _owned(student) == set()


@pytest.mark.parametrize("is_active", [True, False])
def test_expired_code_reports_expired_regardless_of_toggle(student, make_code, now, days, is_active):
    make_code("qr_old", "logic_negate", is_active=is_active, start=now - days(10), end=now - days(1))

    outcome = process_scan(student.id, build_scan_payload("qr_old", "logic_negate"), now=now)

    assert outcome.error.code == "expired_code"
    assert _owned(student) == set()


def test_inactive_code_within_window(student, make_code, now, days):
    make_code("qr_off", "logic_negate", is_active=False, start=now - days(1), end=now + days(1))

    outcome = process_scan(student.id, build_scan_payload("qr_off", "logic_negate"), now=now)

    assert outcome.error.code == "inactive_code"
    assert _owned(student) == set()


def test_code_before_start_is_not_yet_active(student, make_code, now, days):
    make_code("qr_soon", "logic_negate", start=now + days(2))

    outcome = process_scan(student.id, build_scan_payload("qr_soon", "logic_negate"), now=now)

    assert outcome.error.code == "not_yet_active"


def test_window_bounds_are_inclusive(student, make_code, now):
    make_code("qr_edge", "logic_negate", start=now, end=now)

    outcome = process_scan(student.id, build_scan_payload("qr_edge", "logic_negate"), now=now)

    assert outcome.success
    assert outcome.result.is_new


def test_unknown_user_is_rejected(make_code, now):
    make_code("qr_1", "controls_if")
    outcome = process_scan(999, build_scan_payload("qr_1", "controls_if"), now=now)
    assert outcome.error.code == "unknown_user"


def test_record_block_wins_over_payload_block(student, make_code, now):
    make_code("qr_1", "controls_if")

    outcome = process_scan(student.id, build_scan_payload("qr_1", "logic_negate"), now=now)

    assert outcome.result.block_id == "controls_if"
    assert _owned(student) == {"controls_if"}


_NO_STORAGE_PAYLOADS = {
    "missing_qr_id": {"type": "blockhunt_blocks", "block": "controls_if"},
    "blank_qr_id": {"type": "blockhunt_blocks", "qrId": "  ", "block": "controls_if"},
    "legacy_blocks": {"type": "blockhunt_blocks", "qrId": "qr_1", "blocks": ["controls_if"]},
}


@pytest.mark.parametrize("body", list(_NO_STORAGE_PAYLOADS.values()), ids=list(_NO_STORAGE_PAYLOADS))
def test_invalid_payload_never_touches_storage(app, student, body):
    user_id = int(student.id)
    statements = []

    def _count(conn, cursor, statement, *args):
        statements.append(statement)

    event.listen(db.engine, "before_cursor_execute", _count)
    try:
        outcome = process_scan(user_id, json.dumps(body))
    finally:
        event.remove(db.engine, "before_cursor_execute", _count)

    assert outcome.error.code == "invalid_payload"
    assert statements == []


def test_storage_failure_surfaces_as_storage_error(student, make_code, now, monkeypatch):
    make_code("qr_1", "controls_if")
    store = CollectionStore()

    def _boom(user_id):
        raise StorageError()

    monkeypatch.setattr(store, "owned_blocks", _boom)
    outcome = process_scan(
        student.id, build_scan_payload("qr_1", "controls_if"), now=now, resolver=UnlockResolver(store=store)
    )

    assert not outcome.success
    assert outcome.error.code == "storage_error"
    assert outcome.to_dict()["error"]["code"] == "storage_error"


def test_outcome_dict_is_camel_case(student, make_code, now):
    make_code("qr_1", "controls_if")
    body = process_scan(student.id, build_scan_payload("qr_1", "controls_if"), now=now).to_dict()
    assert body == {
        "success": True,
        "message": "New block unlocked!",
        "isNew": True,
        "blockId": "controls_if",
        "totalOwnedCount": 1,
        "qrId": "qr_1",
    }


def test_default_blocks_are_unlocked_without_ownership():
    assert is_unlocked("variables_set", [], is_default_block=True)
    assert is_unlocked("logic_negate", ["logic_negate"], is_default_block=False)
    assert not is_unlocked("logic_negate", ["controls_if"], is_default_block=False)
    assert not is_unlocked("logic_negate", None, is_default_block=False)


def test_block_credited_between_read_and_insert_is_not_new(student, make_code, now, monkeypatch):
    make_code("qr_1", "logic_negate")
    store = CollectionStore()
    # Another request credited the block after this one read the owned set
    store.add_block(student.id, "logic_negate")
    monkeypatch.setattr(store, "owned_blocks", lambda user_id: set())

    outcome = process_scan(
        student.id, build_scan_payload("qr_1", "logic_negate"), now=now, resolver=UnlockResolver(store=store)
    )

    assert outcome.success
    assert outcome.result.is_new is False
    assert outcome.result.total_owned_count == 1
    assert db.session.execute(select(ScanRecord)).scalars().all() == []
