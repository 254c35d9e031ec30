"""Workflow engine for a worker's daily production record.

The engine is pure: it takes a snapshot of the counters and an action and
returns the next snapshot.  Persisting the result is the store's job.

Every action bumps one counter by its quantity; ``issue`` and ``produce``
also move ``goods_in_hand``.  The record's stage becomes the stage of the
action just applied.  By default any action is accepted from any stage,
which matches how the floor actually works (goods get issued mid-day,
alterations come back after QC and so on).  ``strict=True`` enables the
transition guard in ``ALLOWED_NEXT`` for teams that want it.
"""

import re
from dataclasses import dataclass, fields, replace

from .errors import InvalidTransitionError, ValidationError
from .models import COUNTER_FIELDS


@dataclass(frozen=True)
class ProductionSnapshot:
    goods_issued: int = 0
    goods_produced: int = 0
    goods_in_hand: int = 0
    alteration_count: int = 0
    qc_passed: int = 0
    qc_failed: int = 0
    packing_completed: int = 0
    current_stage: str = "idle"

    @classmethod
    def empty(cls) -> "ProductionSnapshot":
        return cls()

    @classmethod
    def from_record(cls, record) -> "ProductionSnapshot":
        values = {name: getattr(record, name) or 0 for name in COUNTER_FIELDS}
        return cls(current_stage=record.current_stage or "idle", **values)

    def counters(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "current_stage"}


@dataclass(frozen=True)
class Action:
    quantity: int

    kind = ""
    stage = ""
    counter = ""
    # +1 adds the quantity to goods_in_hand, -1 takes it away, 0 leaves it
    in_hand = 0


@dataclass(frozen=True)
class Issue(Action):
    kind = "issue"
    stage = "issued"
    counter = "goods_issued"
    in_hand = 1


@dataclass(frozen=True)
class Produce(Action):
    kind = "produce"
    stage = "production"
    counter = "goods_produced"
    in_hand = -1


@dataclass(frozen=True)
class Alteration(Action):
    kind = "alteration"
    stage = "alteration"
    counter = "alteration_count"


@dataclass(frozen=True)
class QualityCheck(Action):
    kind = "qc"
    stage = "qc"
    counter = "qc_passed"


@dataclass(frozen=True)
class Pack(Action):
    kind = "pack"
    stage = "packing"
    counter = "packing_completed"


# counters are 32-bit integer columns
MAX_QUANTITY = 2**31 - 1

ACTIONS = {cls.kind: cls for cls in (Issue, Produce, Alteration, QualityCheck, Pack)}

ALLOWED_NEXT = {
    "idle": {"issued"},
    "issued": {"issued", "production"},
    "production": {"issued", "production", "alteration", "qc", "packing"},
    "alteration": {"issued", "production", "alteration", "qc"},
    "qc": {"issued", "production", "alteration", "qc", "packing"},
    "packing": {"issued", "production", "alteration", "qc", "packing", "completed"},
    "completed": {"issued"},
}


def parse_quantity(value) -> int:
    if isinstance(value, bool):
        raise ValidationError("Quantity must be a whole number")
    if isinstance(value, str):
        value = value.strip()
        if not re.fullmatch(r"-?\d+", value, re.ASCII):
            raise ValidationError("Quantity must be a whole number")
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError("Quantity must be a whole number")
    if value < 1:
        raise ValidationError("Quantity must be at least 1")
    if value > MAX_QUANTITY:
        raise ValidationError("Quantity is too large")
    return value


def make_action(kind: str, quantity) -> Action:
    cls = ACTIONS.get((kind or "").strip().lower())
    if cls is None:
        raise ValidationError(
            f"Unknown action {kind!r}; expected one of {', '.join(ACTIONS)}"
        )
    return cls(parse_quantity(quantity))


def check_transition(current: str, target: str) -> None:
    if target not in ALLOWED_NEXT.get(current, ()):
        raise InvalidTransitionError(f"Cannot move from {current} to {target}")


def apply_action(snapshot: ProductionSnapshot | None, action: Action, strict: bool = False) -> ProductionSnapshot:
    if snapshot is None:
        snapshot = ProductionSnapshot.empty()
    if action.kind not in ACTIONS:
        raise ValidationError(f"Unknown action {action!r}")
    if action.quantity < 1:
        raise ValidationError("Quantity must be at least 1")
    if strict:
        check_transition(snapshot.current_stage, action.stage)

    changes = {action.counter: getattr(snapshot, action.counter) + action.quantity}
    if action.in_hand:
        changes["goods_in_hand"] = max(0, snapshot.goods_in_hand + action.in_hand * action.quantity)
    for name, value in changes.items():
        if value > MAX_QUANTITY:
            raise ValidationError(f"{name} would exceed {MAX_QUANTITY}")
    return replace(snapshot, current_stage=action.stage, **changes)


def complete(snapshot: ProductionSnapshot, strict: bool = False) -> ProductionSnapshot:
    if strict:
        check_transition(snapshot.current_stage, "completed")
    return replace(snapshot, current_stage="completed")


def suggested_action(snapshot: ProductionSnapshot | None) -> str:
    """The primary next step for a worker's day.

    Nothing issued yet means ``issue``; goods still in hand means
    ``produce``; otherwise the day is ready to ``pack``.
    """
    if snapshot is None or snapshot.goods_issued <= 0:
        return "issue"
    if snapshot.goods_in_hand > 0:
        return "produce"
    return "pack"


def changed_fields(before: ProductionSnapshot, after: ProductionSnapshot) -> dict:
    old = before.counters()
    return {name: value for name, value in after.counters().items() if old[name] != value}


def audit_entries(before: ProductionSnapshot, after: ProductionSnapshot, action: str) -> list[dict]:
    """One entry per counter that moved, with the delta actually applied.

    A stage-only change (marking a day completed) yields a single entry
    against ``current_stage`` so the trail still shows it.
    """
    entries = [
        {
            "stage": after.current_stage,
            "action": action,
            "field": name,
            "quantity": value - getattr(before, name),
        }
        for name, value in changed_fields(before, after).items()
    ]
    if not entries and before.current_stage != after.current_stage:
        entries.append(
            {"stage": after.current_stage, "action": action, "field": "current_stage", "quantity": 0}
        )
    return entries
