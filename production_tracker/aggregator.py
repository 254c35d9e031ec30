"""Roll production rows up into dashboard figures.

All functions take serialized production rows (mappings shaped like the
API output, optionally with an embedded ``worker`` mapping) and never
touch the database.  Missing or ``None`` counters count as zero.  Sorting
is always stable, so ties keep the order the rows came in.
"""

from datetime import date

UNKNOWN_WORKER = "Unknown"


def _n(row, key) -> int:
    return row.get(key) or 0


def _worker_name(row) -> str:
    worker = row.get("worker") or {}
    return worker.get("name") or UNKNOWN_WORKER


def _percent(numerator, denominator) -> str:
    if not denominator:
        return "0.0"
    return f"{numerator / denominator * 100:.1f}"


def totals(rows) -> dict:
    result = {"issued": 0, "produced": 0, "alteration": 0, "qc": 0, "packed": 0}
    for row in rows:
        result["issued"] += _n(row, "goods_issued")
        result["produced"] += _n(row, "goods_produced")
        result["alteration"] += _n(row, "alteration_count")
        result["qc"] += _n(row, "qc_passed")
        result["packed"] += _n(row, "packing_completed")
    return result


def conversion_rate(summary: dict) -> str:
    """Produced as a percentage of issued, one decimal."""
    return _percent(summary["produced"], summary["issued"])


def alteration_rate(summary: dict) -> str:
    """Alterations as a percentage of produced, one decimal."""
    return _percent(summary["alteration"], summary["produced"])


def worker_rankings(rows, limit: int = 5) -> list[dict]:
    stats = {}
    for row in rows:
        entry = stats.setdefault(
            row.get("worker_id"),
            {"worker_id": row.get("worker_id"), "name": _worker_name(row), "produced": 0, "defects": 0},
        )
        entry["produced"] += _n(row, "goods_produced")
        entry["defects"] += _n(row, "alteration_count")
    ranked = sorted(stats.values(), key=lambda e: e["produced"], reverse=True)
    return ranked[:limit]


def trend(rows) -> list[dict]:
    grouped = {}
    for row in rows:
        day = str(row["date"])
        entry = grouped.setdefault(day, {"date": day, "produced": 0, "issued": 0})
        entry["produced"] += _n(row, "goods_produced")
        entry["issued"] += _n(row, "goods_issued")
    series = sorted(grouped.values(), key=lambda e: e["date"])
    for entry in series:
        d = date.fromisoformat(entry["date"])
        entry["label"] = f"{d:%b} {d.day}"
    return series


def distribution(rows) -> list[dict]:
    in_hand = produced = alteration = 0
    for row in rows:
        in_hand += _n(row, "goods_in_hand")
        produced += _n(row, "goods_produced")
        alteration += _n(row, "alteration_count")
    slices = [
        {"name": "In Hand", "value": in_hand},
        {"name": "Produced", "value": produced},
        {"name": "Alteration", "value": alteration},
    ]
    return [s for s in slices if s["value"] > 0]


def top_contributors(rows, limit: int = 7) -> list[dict]:
    stats = {}
    for row in rows:
        name = _worker_name(row)
        entry = stats.setdefault(name, {"name": name, "value": 0})
        entry["value"] += _n(row, "goods_produced")
    return sorted(stats.values(), key=lambda e: e["value"], reverse=True)[:limit]


def top_performers(workers, rows, limit: int = 5) -> list[dict]:
    """Every worker with their produced count for the day, best first.

    ``workers`` are worker mappings; workers without a row count as 0.
    """
    produced = {}
    for row in rows:
        produced.setdefault(row.get("worker_id"), _n(row, "goods_produced"))
    data = [{"worker_id": w["id"], "name": w["name"], "produced": produced.get(w["id"], 0)} for w in workers]
    return sorted(data, key=lambda e: e["produced"], reverse=True)[:limit]


def progress_percentage(value, total) -> float:
    if not total:
        return 0.0
    return min(100.0, value / total * 100)


def analytics(rows, range_kind: str) -> dict:
    rows = list(rows)
    summary = totals(rows)
    efficiency = conversion_rate(summary)
    defect_rate = alteration_rate(summary)
    return {
        "range": range_kind,
        "totals": summary,
        "conversion_rate": efficiency,
        "alteration_rate": defect_rate,
        "efficiency": efficiency,
        "defect_rate": defect_rate,
        "rankings": worker_rankings(rows),
        "trend": [] if range_kind == "today" else trend(rows),
        "distribution": distribution(rows),
        "top_contributors": top_contributors(rows),
    }
