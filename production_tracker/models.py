"""Database models for the production tracker.

Workers are the people on the floor.  Each worker gets at most one
``DailyProduction`` row per calendar day holding the running counters for
that day; the row is created the first time anything happens for the
worker that day.  ``ProductionLog`` is the append-only trail of every
counter change made to a production row.
"""

from sqlalchemy import func

from . import db


STAGES = ("idle", "issued", "production", "alteration", "qc", "packing", "completed")

COUNTER_FIELDS = (
    "goods_issued",
    "goods_produced",
    "goods_in_hand",
    "alteration_count",
    "qc_passed",
    "qc_failed",
    "packing_completed",
)


class Worker(db.Model):
    __tablename__ = "workers"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    role = db.Column(db.String(120), nullable=False, default="Staff")
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    production = db.relationship("DailyProduction", back_populates="worker", lazy=True)


class DailyProduction(db.Model):
    """One worker's counters for one day.

    ``goods_in_hand`` tracks issued minus produced but is clamped at zero,
    so it can drift from that difference when more is produced than was
    issued.  ``current_stage`` is the stage of the last action applied.
    ``version`` is bumped on every write and guards concurrent updates.
    """

    __tablename__ = "daily_production"
    __table_args__ = (
        db.UniqueConstraint("worker_id", "date", name="uq_daily_production_worker_date"),
    )

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)

    goods_issued = db.Column(db.Integer, nullable=False, default=0)
    goods_produced = db.Column(db.Integer, nullable=False, default=0)
    goods_in_hand = db.Column(db.Integer, nullable=False, default=0)
    alteration_count = db.Column(db.Integer, nullable=False, default=0)
    qc_passed = db.Column(db.Integer, nullable=False, default=0)
    qc_failed = db.Column(db.Integer, nullable=False, default=0)
    packing_completed = db.Column(db.Integer, nullable=False, default=0)

    current_stage = db.Column(db.String(20), nullable=False, default="idle")
    version = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    worker = db.relationship("Worker", back_populates="production", lazy="joined")
    logs = db.relationship(
        "ProductionLog", backref="production", lazy=True, order_by="ProductionLog.id"
    )


class ProductionLog(db.Model):
    __tablename__ = "production_logs"
    id = db.Column(db.Integer, primary_key=True)
    production_id = db.Column(
        db.Integer, db.ForeignKey("daily_production.id"), nullable=False, index=True
    )
    stage = db.Column(db.String(20), nullable=False)
    action = db.Column(db.String(20), nullable=False)  # issue/produce/.../correction
    field = db.Column(db.String(40), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    timestamp = db.Column(db.DateTime(timezone=True), server_default=func.now(), index=True)
