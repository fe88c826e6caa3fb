from __future__ import annotations

from typing import Any, Dict

import pandas as pd

from dispatch_core.charts import metric_bar_chart, to_vega_spec

# metric column -> (chart title, color, axis format, fixed y domain)
COMPARISON_CHARTS = {
    "success_rate": ("成单率对比", "#3b82f6", "d", (0, 100)),
    "dispatch_rate": ("派单率对比", "#10b981", "d", (0, 100)),
    "dispatch_30min_rate": ("30分钟派单率对比", "#8b5cf6", "d", (0, 100)),
    "avg_revenue": ("每单业绩对比", "#f59e0b", "~s", None),
    "total_orders": ("总单量对比", "#6366f1", "~s", None),
}


def compute_comparison(selected: pd.DataFrame) -> Dict[str, Any]:
    if selected.empty:
        return {"count": 0, "labels": [], "charts": {}}

    df = selected.copy()
    # Names repeat across categories, so bars are keyed by name + category.
    df["label"] = df["name"].astype(str) + "·" + df["project_category"].astype(str)
    df = df.drop(columns=["date"], errors="ignore")

    charts: Dict[str, Any] = {}
    for metric, (title, color, axis_format, domain) in COMPARISON_CHARTS.items():
        chart = metric_bar_chart(df, metric, title=title, color=color, axis_format=axis_format, y_domain=domain)
        charts[metric] = to_vega_spec(chart)

    return {
        "count": int(len(df)),
        "labels": df["label"].tolist(),
        "charts": charts,
    }
