import logging
from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from production_tracker import db, service, store
from production_tracker.errors import (
    ConflictError, InvalidTransitionError, NotFoundError, TransportError, ValidationError,
)

DAY = date(2026, 10, 19)


def test_workers_sorted_and_searchable(app):
    for name in ("Zara", "amit", "Bina"):
        store.create_worker(name)
    assert [w.name for w in store.list_workers()] == ["Bina", "Zara", "amit"]
    assert [w.name for w in store.list_workers("AM")] == ["amit"]


def test_worker_name_too_short(app):
    with pytest.raises(ValidationError):
        store.create_worker(" a ")
    assert store.list_workers() == []


def test_unique_record_per_worker_day(app):
    w = store.create_worker("Alice")
    store.create_production_record(w.id, DAY)
    with pytest.raises(ConflictError):
        store.create_production_record(w.id, DAY)
    assert store.get_worker_production(w.id, date(2026, 10, 20)) is None


def test_atomic_update_bumps_version_and_logs(app):
    w = store.create_worker("Alice")
    rec = store.create_production_record(w.id, DAY)
    entries = [
        {"stage": "issued", "action": "issue", "field": "goods_issued", "quantity": 5},
        {"stage": "issued", "action": "issue", "field": "goods_in_hand", "quantity": 5},
    ]
    updated = store.apply_production_update(rec.id, 1, {"goods_issued": 5, "goods_in_hand": 5}, "issued", entries)
    assert (updated.goods_issued, updated.goods_in_hand, updated.version) == (5, 5, 2)
    assert [(l.field, l.quantity) for l in store.list_production_logs(rec.id)] == [
        ("goods_issued", 5), ("goods_in_hand", 5),
    ]


def test_stale_version_is_a_conflict(app):
    w = store.create_worker("Alice")
    rec = store.create_production_record(w.id, DAY)
    store.apply_production_update(rec.id, 1, {"qc_passed": 1}, "qc", [])
    with pytest.raises(ConflictError):
        store.apply_production_update(rec.id, 1, {"qc_passed": 9}, "qc", [])
    assert store.get_production(rec.id).qc_passed == 1


def test_update_missing_record(app):
    with pytest.raises(NotFoundError):
        store.apply_production_update(999, 1, {"qc_passed": 1}, "qc", [])
    with pytest.raises(NotFoundError):
        store.update_production_field(999, "qc_passed", 1)


def test_single_field_correction(app):
    w = store.create_worker("Alice")
    rec = service.record_action(w.id, DAY, "issue", 10)
    fixed = store.update_production_field(rec.id, "goods_issued", 8)
    assert fixed.goods_issued == 8 and fixed.current_stage == "issued" and fixed.version == 3
    last = store.list_production_logs(rec.id)[-1]
    assert (last.action, last.field, last.quantity) == ("correction", "goods_issued", -2)
    with pytest.raises(ValidationError):
        store.update_production_field(rec.id, "goods_issued", -1)
    with pytest.raises(ValidationError):
        store.update_production_field(rec.id, "version", 1)


def test_range_query(app):
    w = store.create_worker("Alice")
    for d in (date(2026, 10, 18), DAY, date(2026, 10, 21)):
        service.record_action(w.id, d, "issue", 1)
    rows = store.get_production_for_range(DAY, date(2026, 10, 25))
    assert [r.date for r in rows] == [DAY, date(2026, 10, 21)]
    assert rows[0].worker.name == "Alice"
    with pytest.raises(ValidationError):
        store.get_production_for_range(date(2026, 10, 25), DAY)


def test_record_action_creates_then_updates(app):
    w = store.create_worker("Alice")
    service.record_action(w.id, DAY, "issue", 50)
    rec = service.record_action(w.id, DAY, "produce", 20)
    assert (rec.goods_issued, rec.goods_produced, rec.goods_in_hand, rec.current_stage) == (50, 20, 30, "production")
    assert len(store.get_production_for_date(DAY)) == 1
    assert len(store.list_production_logs(rec.id)) == 4


def test_record_action_validates_before_writing(app):
    w = store.create_worker("Alice")
    with pytest.raises(ValidationError):
        service.record_action(w.id, DAY, "issue", 0)
    assert store.get_worker_production(w.id, DAY) is None
    with pytest.raises(NotFoundError):
        service.record_action(999, DAY, "issue", 1)


def test_database_fault_becomes_transport_error(app, monkeypatch):
    store.create_worker("Alice")

    def down(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("connection refused"))

    monkeypatch.setattr(db.session, "execute", down)
    with pytest.raises(TransportError):
        store.list_workers()
    monkeypatch.undo()
    assert [w.name for w in store.list_workers()] == ["Alice"]


def test_lost_create_race_uses_winning_row(app, monkeypatch):
    w = store.create_worker("Alice")
    lookup = store.get_worker_production
    calls = []

    def racing(worker_id, day):
        calls.append(day)
        if len(calls) == 1:
            # another request creates the row after our first read
            store.create_production_record(worker_id, day)
            return None
        return lookup(worker_id, day)

    monkeypatch.setattr(store, "get_worker_production", racing)
    rec = service.record_action(w.id, DAY, "issue", 5)
    assert len(calls) == 2
    assert (rec.goods_issued, rec.goods_in_hand, rec.version) == (5, 5, 2)
    assert len(store.get_production_for_date(DAY)) == 1


def test_oversized_correction_rejected(app):
    w = store.create_worker("Alice")
    rec = service.record_action(w.id, DAY, "issue", 1)
    with pytest.raises(ValidationError):
        store.update_production_field(rec.id, "goods_issued", 2**31)


def test_complete_day_refusal_logged(app, caplog):
    app.config["STRICT_STAGE_TRANSITIONS"] = True
    w = store.create_worker("Alice")
    rec = service.record_action(w.id, DAY, "issue", 3)
    with caplog.at_level(logging.WARNING, logger=app.logger.name):
        with pytest.raises(InvalidTransitionError):
            service.complete_day(rec.id)
    assert any(
        r.levelno == logging.WARNING and f"completing record {rec.id} refused" in r.getMessage()
        for r in caplog.records
    )
    assert store.get_production(rec.id).current_stage == "issued"


def test_complete_day_missing_record_logged(app, caplog):
    with caplog.at_level(logging.ERROR, logger=app.logger.name):
        with pytest.raises(NotFoundError):
            service.complete_day(999)
    assert any("completing record 999 failed" in r.getMessage() for r in caplog.records)
