from datetime import date

from flask import Blueprint, current_app, jsonify, request, send_file

from . import aggregator, service, store
from .errors import TrackerError, ValidationError
from .ranges import parse_day, resolve_range
from .reports import production_workbook
from .workflow import ProductionSnapshot, suggested_action

api = Blueprint("api", __name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def fmt_ts(v):
    return v.isoformat() if v else None


def worker_json(w):
    return {"id": w.id, "name": w.name, "role": w.role, "created_at": fmt_ts(w.created_at)}


def production_json(p):
    return {
        "id": p.id,
        "worker_id": p.worker_id,
        "date": p.date.isoformat(),
        "goods_issued": p.goods_issued,
        "goods_produced": p.goods_produced,
        "goods_in_hand": p.goods_in_hand,
        "alteration_count": p.alteration_count,
        "qc_passed": p.qc_passed,
        "qc_failed": p.qc_failed,
        "packing_completed": p.packing_completed,
        "current_stage": p.current_stage,
        "version": p.version,
        "updated_at": fmt_ts(p.updated_at),
        "worker": {"name": p.worker.name, "role": p.worker.role} if p.worker else None,
    }


def log_json(entry):
    return {
        "id": entry.id,
        "production_id": entry.production_id,
        "stage": entry.stage,
        "action": entry.action,
        "field": entry.field,
        "quantity": entry.quantity,
        "timestamp": fmt_ts(entry.timestamp),
    }


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data


def int_param(value, name):
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer") from None


def rows_for_range(kind):
    start, end = resolve_range(kind)
    return [production_json(p) for p in store.get_production_for_range(start, end)]


@api.errorhandler(TrackerError)
def tracker_error(e):
    if e.status >= 500:
        current_app.logger.error("%s %s: %s", request.method, request.path, e.message)
    return jsonify({"success": False, "error": e.message}), e.status


@api.get("/workers")
def list_workers():
    workers = store.list_workers(request.args.get("search"))
    return jsonify({"success": True, "workers": [worker_json(w) for w in workers]})


@api.post("/workers")
def add_worker():
    data = json_body()
    worker = service.add_worker(data.get("name") or "", data.get("role") or "Staff")
    return jsonify({"success": True, "worker": worker_json(worker)}), 201


@api.get("/production")
def production_for_day():
    day = parse_day(request.args.get("date"), default=date.today())
    rows = store.get_production_for_date(day)
    return jsonify({"success": True, "date": day.isoformat(), "production": [production_json(p) for p in rows]})


@api.get("/production/range")
def production_for_range():
    start = parse_day(request.args.get("start"))
    end = parse_day(request.args.get("end"))
    rows = store.get_production_for_range(start, end)
    return jsonify({"success": True, "production": [production_json(p) for p in rows]})


@api.get("/production/roster")
def production_roster():
    day = parse_day(request.args.get("date"), default=date.today())
    entries = []
    for worker, record in service.roster(day, request.args.get("search")):
        snapshot = ProductionSnapshot.from_record(record) if record else ProductionSnapshot.empty()
        entries.append({
            "worker": worker_json(worker),
            "production_id": record.id if record else None,
            **snapshot.counters(),
            "current_stage": snapshot.current_stage,
            "suggested_action": suggested_action(snapshot),
        })
    return jsonify({"success": True, "date": day.isoformat(), "roster": entries})


@api.post("/production/actions")
def production_action():
    data = json_body()
    worker_id = int_param(data.get("worker_id"), "worker_id")
    day = parse_day(data.get("date"), default=date.today())
    record = service.record_action(worker_id, day, data.get("action") or "", data.get("quantity"))
    return jsonify({"success": True, "production": production_json(record)})


@api.post("/production/<int:record_id>/complete")
def production_complete(record_id):
    record = service.complete_day(record_id)
    return jsonify({"success": True, "production": production_json(record)})


@api.patch("/production/<int:record_id>")
def production_correct(record_id):
    data = json_body()
    record = service.correct_field(record_id, data.get("field") or "", data.get("value"), data.get("stage"))
    return jsonify({"success": True, "production": production_json(record)})


@api.get("/production/<int:record_id>/logs")
def production_logs(record_id):
    rows = store.list_production_logs(record_id)
    return jsonify({"success": True, "logs": [log_json(r) for r in rows]})


@api.get("/overview")
def overview():
    day = parse_day(request.args.get("date"), default=date.today())
    workers = [worker_json(w) for w in store.list_workers()]
    rows = [production_json(p) for p in store.get_production_for_date(day)]
    summary = aggregator.totals(rows)
    return jsonify({
        "success": True,
        "date": day.isoformat(),
        "workers": len(workers),
        "totals": summary,
        "in_hand": sum(r["goods_in_hand"] for r in rows),
        "produced_progress": aggregator.progress_percentage(summary["produced"], summary["issued"]),
        "top_performers": aggregator.top_performers(workers, rows),
        "top_contributors": aggregator.top_contributors(rows),
        "distribution": aggregator.distribution(rows),
    })


@api.get("/analytics")
def analytics():
    kind = request.args.get("range", "today")
    rows = rows_for_range(kind)
    return jsonify({"success": True, **aggregator.analytics(rows, kind)})


@api.get("/reports/production.xlsx")
def production_report():
    kind = request.args.get("range", "week")
    rows = rows_for_range(kind)
    start, end = resolve_range(kind)
    return send_file(
        production_workbook(rows),
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"production_{start.isoformat()}_{end.isoformat()}.xlsx",
    )
