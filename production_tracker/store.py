"""Record store: the only module that talks to the database.

Functions return model instances and raise the errors from ``errors``.
Database faults other than the ones mapped to a specific error are rolled
back and re-raised as ``TransportError``.
"""

from datetime import date, datetime, timezone
from functools import wraps

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from . import db
from .errors import ConflictError, NotFoundError, TrackerError, TransportError, ValidationError
from .models import COUNTER_FIELDS, STAGES, DailyProduction, ProductionLog, Worker
from .workflow import MAX_QUANTITY


def utcnow():
    return datetime.now(timezone.utc)


def guarded(fn):
    """Roll back and wrap unexpected database errors."""

    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except TrackerError:
            db.session.rollback()
            raise
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error("%s failed: %s", fn.__name__, e)
            raise TransportError("Database unavailable") from e

    return wrapper


@guarded
def list_workers(search: str | None = None):
    stmt = select(Worker).order_by(Worker.name, Worker.id)
    search = (search or "").strip()
    if search:
        stmt = stmt.where(func.lower(Worker.name).like(f"%{search.lower()}%"))
    return db.session.execute(stmt).scalars().all()


@guarded
def get_worker(worker_id: int) -> Worker:
    worker = db.session.get(Worker, worker_id)
    if worker is None:
        raise NotFoundError(f"Worker {worker_id} not found")
    return worker


@guarded
def create_worker(name: str, role: str = "Staff") -> Worker:
    name = (name or "").strip()
    if len(name) < 2:
        raise ValidationError("Name must be at least 2 characters")
    worker = Worker(name=name, role=(role or "Staff").strip() or "Staff")
    db.session.add(worker)
    db.session.commit()
    current_app.logger.info("added worker %s (%s)", worker.id, worker.name)
    return worker


def _production_query():
    return select(DailyProduction).options(joinedload(DailyProduction.worker))


@guarded
def get_production_for_date(day: date):
    stmt = _production_query().where(DailyProduction.date == day).order_by(DailyProduction.id)
    return db.session.execute(stmt).scalars().all()


@guarded
def get_production_for_range(start: date, end: date):
    if start > end:
        raise ValidationError("Start date must not be after end date")
    stmt = (
        _production_query()
        .where(DailyProduction.date >= start, DailyProduction.date <= end)
        .order_by(DailyProduction.date, DailyProduction.id)
    )
    return db.session.execute(stmt).scalars().all()


@guarded
def get_production(record_id: int) -> DailyProduction:
    record = db.session.get(DailyProduction, record_id)
    if record is None:
        raise NotFoundError(f"Production record {record_id} not found")
    return record


@guarded
def get_worker_production(worker_id: int, day: date) -> DailyProduction | None:
    # No row simply means nothing has happened for this worker today
    stmt = select(DailyProduction).where(
        DailyProduction.worker_id == worker_id, DailyProduction.date == day
    )
    return db.session.execute(stmt).scalars().first()


@guarded
def create_production_record(worker_id: int, day: date) -> DailyProduction:
    record = DailyProduction(worker_id=worker_id, date=day, current_stage="idle", version=1)
    db.session.add(record)
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ConflictError(
            f"Production record for worker {worker_id} on {day.isoformat()} already exists"
        ) from e
    return record


@guarded
def update_production_field(record_id: int, field: str, value: int, stage: str | None = None) -> DailyProduction:
    """Overwrite a single counter, optionally retagging the stage.

    Used for supervisor corrections; the change lands in the audit log as a
    ``correction`` with the signed difference.
    """
    if field not in COUNTER_FIELDS:
        raise ValidationError(f"Unknown field {field!r}")
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError("Value must be a non-negative whole number")
    if value > MAX_QUANTITY:
        raise ValidationError("Value is too large")
    if stage is not None and stage not in STAGES:
        raise ValidationError(f"Unknown stage {stage!r}")

    record = get_production(record_id)
    previous = getattr(record, field)
    setattr(record, field, value)
    if stage:
        record.current_stage = stage
    record.version = record.version + 1
    record.updated_at = utcnow()
    db.session.add(
        ProductionLog(
            production_id=record.id,
            stage=record.current_stage,
            action="correction",
            field=field,
            quantity=value - previous,
            timestamp=utcnow(),
        )
    )
    db.session.commit()
    return record


@guarded
def apply_production_update(record_id: int, expected_version: int, values: dict, stage: str, entries: list[dict]) -> DailyProduction:
    """Write all changed counters and the stage in one guarded UPDATE.

    The UPDATE only matches while ``version`` still equals
    ``expected_version``; audit entries are inserted in the same
    transaction, so either everything lands or nothing does.
    """
    unknown = set(values) - set(COUNTER_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    stmt = (
        update(DailyProduction)
        .where(DailyProduction.id == record_id, DailyProduction.version == expected_version)
        .values(
            current_stage=stage,
            version=DailyProduction.version + 1,
            updated_at=utcnow(),
            **values,
        )
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount == 0:
        db.session.rollback()
        if db.session.get(DailyProduction, record_id) is None:
            raise NotFoundError(f"Production record {record_id} not found")
        raise ConflictError(f"Production record {record_id} was changed by someone else; reload and retry")

    now = utcnow()
    db.session.add_all(
        ProductionLog(production_id=record_id, timestamp=now, **entry) for entry in entries
    )
    db.session.commit()
    return db.session.get(DailyProduction, record_id, populate_existing=True)


@guarded
def list_production_logs(production_id: int):
    get_production(production_id)
    stmt = (
        select(ProductionLog)
        .where(ProductionLog.production_id == production_id)
        .order_by(ProductionLog.id)
    )
    return db.session.execute(stmt).scalars().all()
