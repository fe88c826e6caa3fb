from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Optional

import pandas as pd

from dispatch_core.data import round_half_up
from dispatch_core.filters import FilterCriteria

MEAN_METRICS = {
    "avg_success": "success_rate",
    "avg_dispatch": "dispatch_rate",
    "avg_revenue": "avg_revenue",
    "avg_30min": "dispatch_30min_rate",
    "avg_response": "avg_response_time",
}


def compute_overview_metrics(df: pd.DataFrame) -> Optional[Dict[str, Any]]:
    """Totals and one-decimal means over the filtered records; None when there is no data."""
    if df.empty:
        return None
    metrics: Dict[str, Any] = {"total_orders": int(pd.to_numeric(df["total_orders"]).sum())}
    for key, col in MEAN_METRICS.items():
        metrics[key] = round_half_up(float(pd.to_numeric(df[col]).mean()), 1)
    return metrics


def _table_rows(df: pd.DataFrame) -> list:
    if df.empty:
        return []
    table = df.copy()
    table["date"] = pd.to_datetime(table["date"]).dt.strftime("%Y-%m-%dT%H:%M")
    return table.to_dict(orient="records")


def compute_overview(filters: FilterCriteria, ctx: Dict[str, Any]) -> Dict[str, Any]:
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    sorted_df: pd.DataFrame = ctx.get("sorted_records", filtered)
    sort = ctx.get("sort")
    return {
        "filters": asdict(filters),
        "sort": asdict(sort) if sort is not None else None,
        "kpis": compute_overview_metrics(filtered),
        "row_counts": {
            "total": int(len(ctx.get("records", pd.DataFrame()))),
            "visible": int(len(sorted_df)),
        },
        "table": _table_rows(sorted_df),
    }
