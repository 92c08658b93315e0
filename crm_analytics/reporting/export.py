"""
Report export: JSON report, flat CSV and Parquet files from an engine run.

All writers create parent directories and return the written ``Path``.
The flatteners take the JSON report payload (``build_report_payload``) rather
than the pydantic models, so the same code re-exports a report read back
from disk.

Files written by ``write_engine_report`` (``{date}`` = generation date)::

    {output_dir}/insights_report_{date}.json    full payload
    {output_dir}/recommendations_{date}.csv     one row per recommendation
    {output_dir}/forecasts_{date}.parquet       one row per (metric, step)

CSV exports are flat (no nested values) so they load directly in Excel or
BI tools without pre-processing.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING

import pyarrow as pa
import pyarrow.parquet as pq

if TYPE_CHECKING:
    from crm_analytics.engine import EngineResult

logger = logging.getLogger(__name__)

RECOMMENDATION_COLUMNS = [
    "generated_at", "snapshot_hash", "id", "category", "title", "priority",
    "impact", "effort", "description", "actions", "insight_id",
]

FORECAST_SCHEMA = pa.schema(
    [
        pa.field("metric", pa.string(), nullable=False),
        pa.field("step", pa.int32(), nullable=False),
        pa.field("date", pa.date32(), nullable=False),
        pa.field("value", pa.float64(), nullable=False),
        pa.field("confidence", pa.float64(), nullable=False),
    ]
)


# ── Generic writers ───────────────────────────────────────────────────────────


def export_to_csv(
    records: list[dict],
    path: Path,
    fieldnames: list[str] | None = None,
) -> Path:
    """Write ``records`` to a UTF-8 CSV file.

    Args:
        records:    List of row dicts.
        path:       Destination file path (parent dirs created if missing).
        fieldnames: Column order.  If None, uses the keys of the first record.

    Returns:
        ``path`` as written. With no records and no ``fieldnames`` the file
        is empty; with ``fieldnames`` it holds the header only.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    if not records and not fieldnames:
        path.write_text("", encoding="utf-8")
        return path
    cols = fieldnames or list(records[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=cols, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(records)
    return path


def export_to_json(data: dict | list, path: Path) -> Path:
    """Write ``data`` to a pretty-printed JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    return path


# ── Payload + flatteners ──────────────────────────────────────────────────────


def build_report_payload(result: "EngineResult") -> dict:
    """JSON-ready dict of an engine run (enums as strings, dates ISO)."""
    return result.model_dump(mode="json")


def flatten_recommendations_for_export(payload: dict) -> list[dict]:
    """One row per recommendation; ``actions`` joined with ``" | "``."""
    generated_at  = payload.get("generated_at", "")
    snapshot_hash = payload.get("snapshot_hash", "")

    rows: list[dict] = []
    for rec in payload.get("recommendations", []):
        rows.append(
            {
                "generated_at":  generated_at,
                "snapshot_hash": snapshot_hash,
                "id":            rec.get("id", ""),
                "category":      rec.get("category", ""),
                "title":         rec.get("title", ""),
                "priority":      rec.get("priority", ""),
                "impact":        rec.get("impact", ""),
                "effort":        rec.get("effort", ""),
                "description":   rec.get("description", ""),
                "actions":       " | ".join(rec.get("actions", [])),
                "insight_id":    rec.get("insight_id", ""),
            }
        )
    return rows


def flatten_forecasts_for_export(payload: dict) -> list[dict]:
    """One row per forecast point: ``metric``, 1-based ``step``, ``date``, ``value``, ``confidence``.

    Metrics are emitted in sorted order; points keep their horizon order.
    """
    rows: list[dict] = []
    forecasts = payload.get("forecasts", {})
    for metric in sorted(forecasts):
        for step, point in enumerate(forecasts[metric], start=1):
            rows.append(
                {
                    "metric":     metric,
                    "step":       step,
                    "date":       point["date"],
                    "value":      point["value"],
                    "confidence": point["confidence"],
                }
            )
    return rows


def write_forecasts_parquet(rows: list[dict], path: Path) -> Path:
    """Write flattened forecast rows to a snappy-compressed Parquet file.

    ``date`` values may be ``datetime.date`` objects or ISO strings.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    columns: dict[str, list] = {f.name: [] for f in FORECAST_SCHEMA}
    for row in rows:
        d = row["date"]
        columns["metric"].append(row["metric"])
        columns["step"].append(int(row["step"]))
        columns["date"].append(date.fromisoformat(d) if isinstance(d, str) else d)
        columns["value"].append(float(row["value"]))
        columns["confidence"].append(float(row["confidence"]))

    table = pa.table(
        {f.name: pa.array(columns[f.name], type=f.type) for f in FORECAST_SCHEMA},
        schema=FORECAST_SCHEMA,
    )
    pq.write_table(table, str(path), compression="snappy")
    return path


# ── Engine report ─────────────────────────────────────────────────────────────


def write_engine_report(result: "EngineResult", output_dir: Path) -> dict[str, Path]:
    """Write the JSON report, recommendations CSV and forecasts Parquet file.

    Returns:
        ``{"report": ..., "recommendations": ..., "forecasts": ...}`` paths.
    """
    output_dir = Path(output_dir)
    date_str = result.generated_at.strftime("%Y-%m-%d")
    payload = build_report_payload(result)

    paths = {
        "report": export_to_json(payload, output_dir / f"insights_report_{date_str}.json"),
        "recommendations": export_to_csv(
            flatten_recommendations_for_export(payload),
            output_dir / f"recommendations_{date_str}.csv",
            fieldnames=RECOMMENDATION_COLUMNS,
        ),
        "forecasts": write_forecasts_parquet(
            flatten_forecasts_for_export(payload),
            output_dir / f"forecasts_{date_str}.parquet",
        ),
    }
    logger.info("Engine report written to %s", output_dir)
    return paths
