"""Simulated period-over-period analysis for a single dispatcher record.

There is no historical data source yet, so the "previous" day/week/month
values are synthesized around the current record with bounded noise. The
numbers are placeholders and must not be read as real history.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional

import numpy as np

from dispatch_core.data import METRIC_LABELS, DispatcherRecord, round_half_up

Granularity = Literal["day", "week", "month"]
Direction = Literal["up", "down", "neutral"]

PERCENT_METRICS = ["success_rate", "dispatch_rate", "dispatch_30min_rate"]
MAGNITUDE_METRICS = ["avg_revenue", "total_orders"]
COMPARED_METRICS = PERCENT_METRICS + MAGNITUDE_METRICS

PERIOD_LABELS: Dict[str, Dict[str, str]] = {
    "day": {"title": "日环比数据", "prev": "昨日", "curr": "今日"},
    "week": {"title": "周环比数据", "prev": "上周", "curr": "本周"},
    "month": {"title": "月环比数据", "prev": "上月", "curr": "本月"},
}


@dataclass(frozen=True)
class ComparisonConfig:
    percent_bounds: Dict[str, int] = field(
        default_factory=lambda: {"success_rate": 5, "dispatch_rate": 5, "dispatch_30min_rate": 8}
    )
    variances: Dict[str, float] = field(default_factory=lambda: {"day": 0.05, "week": 0.15, "month": 0.25})


@dataclass(frozen=True)
class MetricComparison:
    metric: str
    label: str
    kind: str
    current: float
    previous: float
    delta: float
    ratio: float
    direction: Direction


def baseline_percent(current: float, bound: int, rng: np.random.Generator) -> float:
    offset = int(rng.integers(-bound, bound)) if bound > 0 else 0
    return float(min(100, max(0, current + offset)))


def baseline_magnitude(current: float, variance: float, rng: np.random.Generator) -> float:
    factor = 1 + float(rng.uniform(-variance, variance))
    return float(max(0.0, round_half_up(current * factor)))


def generate_baseline(
    record: DispatcherRecord,
    granularity: Granularity,
    rng: np.random.Generator,
    config: Optional[ComparisonConfig] = None,
) -> Dict[str, float]:
    config = config or ComparisonConfig()
    variance = config.variances[granularity]
    baseline = {
        metric: baseline_percent(getattr(record, metric), config.percent_bounds[metric], rng)
        for metric in PERCENT_METRICS
    }
    for metric in MAGNITUDE_METRICS:
        baseline[metric] = baseline_magnitude(getattr(record, metric), variance, rng)
    return baseline


def classify(delta: float) -> Direction:
    if delta > 0:
        return "up"
    if delta < 0:
        return "down"
    return "neutral"


def compare_metric(metric: str, current: float, previous: float) -> MetricComparison:
    # Current values are compared as-is, even if outside [0, 100].
    delta = float(current) - float(previous)
    ratio = delta / float(previous) * 100 if previous != 0 else 0.0
    label, kind = METRIC_LABELS[metric]
    return MetricComparison(
        metric=metric,
        label=label,
        kind=kind,
        current=float(current),
        previous=float(previous),
        delta=delta,
        ratio=ratio,
        direction=classify(delta),
    )


def compare_to_baseline(record: DispatcherRecord, baseline: Mapping[str, float]) -> List[MetricComparison]:
    return [compare_metric(m, getattr(record, m), baseline[m]) for m in COMPARED_METRICS]


def compute_individual_analysis(
    record: DispatcherRecord,
    *,
    rng: Optional[np.random.Generator] = None,
    config: Optional[ComparisonConfig] = None,
) -> Dict[str, Any]:
    rng = rng if rng is not None else np.random.default_rng()
    periods: Dict[str, Any] = {}
    for granularity in ("day", "week", "month"):
        baseline = generate_baseline(record, granularity, rng, config)
        periods[granularity] = {
            **PERIOD_LABELS[granularity],
            "baseline": baseline,
            "rows": [asdict(row) for row in compare_to_baseline(record, baseline)],
        }
    return {
        "record": {**asdict(record), "date": record.date.isoformat()},
        "simulated": True,
        "periods": periods,
    }
