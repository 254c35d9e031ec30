from datetime import date

from flask import current_app

from . import store
from .errors import ConflictError, TrackerError
from .workflow import ProductionSnapshot, apply_action, audit_entries, changed_fields, complete, make_action


def _strict() -> bool:
    return bool(current_app.config.get("STRICT_STAGE_TRANSITIONS"))


def _persist(record, before: ProductionSnapshot, after: ProductionSnapshot, action: str):
    return store.apply_production_update(
        record.id,
        record.version,
        changed_fields(before, after),
        after.current_stage,
        audit_entries(before, after, action),
    )


def _record_for(worker_id: int, day: date):
    record = store.get_worker_production(worker_id, day)
    if record is not None:
        return record
    try:
        return store.create_production_record(worker_id, day)
    except ConflictError:
        # someone else created the row between our read and insert
        record = store.get_worker_production(worker_id, day)
        if record is None:
            raise
        return record


def record_action(worker_id: int, day: date, kind: str, quantity):
    """Apply one workflow action to a worker's record for ``day``.

    The action is validated before anything touches the database.  The
    day's record is created on first use.  A concurrent edit of the same
    record surfaces as ``ConflictError``; nothing is retried.
    """
    action = make_action(kind, quantity)
    try:
        store.get_worker(worker_id)
        record = _record_for(worker_id, day)
        before = ProductionSnapshot.from_record(record)
        after = apply_action(before, action, strict=_strict())
        updated = _persist(record, before, after, action.kind)
    except ConflictError as e:
        current_app.logger.warning("action %s for worker %s refused: %s", action.kind, worker_id, e)
        raise
    except TrackerError as e:
        current_app.logger.error("action %s for worker %s failed: %s", action.kind, worker_id, e)
        raise
    current_app.logger.info(
        "worker %s %s: %s x%d -> %s", worker_id, day.isoformat(), action.kind, action.quantity, updated.current_stage
    )
    return updated


def complete_day(record_id: int):
    try:
        record = store.get_production(record_id)
        before = ProductionSnapshot.from_record(record)
        after = complete(before, strict=_strict())
        if before == after:
            return record
        updated = _persist(record, before, after, "complete")
    except ConflictError as e:
        current_app.logger.warning("completing record %s refused: %s", record_id, e)
        raise
    except TrackerError as e:
        current_app.logger.error("completing record %s failed: %s", record_id, e)
        raise
    current_app.logger.info("record %s completed", record_id)
    return updated


def roster(day: date, search: str | None = None):
    """Every worker (optionally filtered) paired with their row for ``day``.

    Workers with nothing recorded yet come back with ``None``.
    """
    rows = {p.worker_id: p for p in store.get_production_for_date(day)}
    return [(w, rows.get(w.id)) for w in store.list_workers(search)]


def correct_field(record_id: int, field: str, value, stage: str | None = None):
    record = store.update_production_field(record_id, field, value, stage)
    current_app.logger.info("record %s corrected: %s=%s", record_id, field, value)
    return record


def add_worker(name: str, role: str = "Staff"):
    return store.create_worker(name, role)
