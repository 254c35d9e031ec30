from io import BytesIO

import pandas as pd

from .aggregator import conversion_rate, alteration_rate, totals, worker_rankings

PRODUCTION_COLUMNS = [
    ("date", "Date"),
    ("worker", "Worker"),
    ("goods_issued", "Issued"),
    ("goods_produced", "Produced"),
    ("goods_in_hand", "In Hand"),
    ("alteration_count", "Alterations"),
    ("qc_passed", "QC Passed"),
    ("packing_completed", "Packed"),
    ("current_stage", "Stage"),
]


def production_frame(rows) -> pd.DataFrame:
    records = []
    for row in rows:
        record = {key: row.get(key) or 0 for key, _ in PRODUCTION_COLUMNS}
        record["date"] = row["date"]
        record["worker"] = (row.get("worker") or {}).get("name") or "Unknown"
        record["current_stage"] = row.get("current_stage") or "idle"
        records.append(record)
    df = pd.DataFrame(records, columns=[key for key, _ in PRODUCTION_COLUMNS])
    df = df.sort_values(["date", "worker"], kind="stable")
    return df.rename(columns=dict(PRODUCTION_COLUMNS))


def production_workbook(rows) -> BytesIO:
    """Build an .xlsx with the raw rows, the rankings and a summary sheet."""
    rows = list(rows)
    summary = totals(rows)
    rankings = pd.DataFrame(
        worker_rankings(rows, limit=len(rows) or 1), columns=["name", "produced", "defects"]
    ).rename(columns={"name": "Worker", "produced": "Produced", "defects": "Alterations"})
    overview = pd.DataFrame(
        [
            ("Issued", summary["issued"]),
            ("Produced", summary["produced"]),
            ("Alterations", summary["alteration"]),
            ("QC Passed", summary["qc"]),
            ("Packed", summary["packed"]),
            ("Conversion %", float(conversion_rate(summary))),
            ("Alteration %", float(alteration_rate(summary))),
        ],
        columns=["Metric", "Value"],
    )

    out = BytesIO()
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        overview.to_excel(writer, sheet_name="Summary", index=False)
        production_frame(rows).to_excel(writer, sheet_name="Production", index=False)
        rankings.to_excel(writer, sheet_name="Rankings", index=False)
    out.seek(0)
    return out
