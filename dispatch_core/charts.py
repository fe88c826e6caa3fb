from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def metric_bar_chart(
    df: pd.DataFrame,
    metric: str,
    *,
    title: str,
    color: str,
    axis_format: str = "~s",
    y_domain: Optional[Tuple[float, float]] = None,
) -> alt.Chart:
    """One bar per row of `df` (keyed by its "label" column) for a single metric."""
    scale = alt.Scale(domain=list(y_domain)) if y_domain else alt.Scale(zero=True)
    hover = alt.selection_point(fields=["label"], on="mouseover", empty="all")
    return (
        alt.Chart(df)
        .mark_bar(color=color, cornerRadiusTopLeft=4, cornerRadiusTopRight=4)
        .encode(
            x=alt.X("label:N", title=None, sort=None, axis=alt.Axis(labelAngle=0, grid=False)),
            y=alt.Y(f"{metric}:Q", title=None, scale=scale, axis=alt.Axis(format=axis_format, gridDash=[4, 4], domain=False, ticks=False)),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=[
                alt.Tooltip("name:N", title="姓名"),
                alt.Tooltip("project_category:N", title="维修项目"),
                alt.Tooltip(f"{metric}:Q", title=title, format=axis_format),
            ],
        )
        .add_params(hover)
        .properties(title=title, height=200)
    )
