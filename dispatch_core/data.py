from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from dispatch_core.filters import (
    ALL_CATEGORIES,
    FilterCriteria,
    SortSpec,
    filter_records,
    normalize_filters,
    normalize_sort,
    sort_records,
)

logger = logging.getLogger(__name__)

PROJECT_CATEGORIES = [ALL_CATEGORIES, "家庭维修", "家电安装", "日常保养", "紧急管道维修", "暖通空调"]

DISPATCHER_NAMES = ["张伟", "李强", "王芳", "赵敏", "刘洋", "陈杰", "杨光", "黄婷", "吴刚", "孙丽"]

# None -> a fresh dataset per process.
DEFAULT_SEED: Optional[int] = None
LOOKBACK_DAYS = 7
WORK_HOURS = (8, 20)

RECORD_COLUMNS = [
    "id",
    "name",
    "success_rate",
    "dispatch_rate",
    "avg_revenue",
    "dispatch_30min_rate",
    "total_orders",
    "avg_response_time",
    "project_category",
    "date",
]

# metric column -> (label, kind)
METRIC_LABELS: Dict[str, tuple] = {
    "success_rate": ("成单率", "percent"),
    "dispatch_rate": ("派单率", "percent"),
    "dispatch_30min_rate": ("30分钟派单率", "percent"),
    "avg_revenue": ("每单业绩", "currency"),
    "total_orders": ("总单量", "number"),
    "avg_response_time": ("平均响应", "minutes"),
}


@dataclass(frozen=True)
class DispatcherRecord:
    id: str
    name: str
    success_rate: float
    dispatch_rate: float
    avg_revenue: float
    dispatch_30min_rate: float
    total_orders: int
    avg_response_time: float
    project_category: str
    date: datetime

    @classmethod
    def from_row(cls, row: pd.Series) -> "DispatcherRecord":
        date = row["date"]
        if isinstance(date, pd.Timestamp):
            date = date.to_pydatetime()
        return cls(
            id=str(row["id"]),
            name=str(row["name"]),
            success_rate=float(row["success_rate"]),
            dispatch_rate=float(row["dispatch_rate"]),
            avg_revenue=float(row["avg_revenue"]),
            dispatch_30min_rate=float(row["dispatch_30min_rate"]),
            total_orders=int(row["total_orders"]),
            avg_response_time=float(row["avg_response_time"]),
            project_category=str(row["project_category"]),
            date=date,
        )


def records_frame(records: Iterable[DispatcherRecord]) -> pd.DataFrame:
    df = pd.DataFrame([asdict(r) for r in records], columns=RECORD_COLUMNS)
    df["date"] = pd.to_datetime(df["date"])
    return df


def generate_mock_records(seed: Optional[int] = None, now: Optional[datetime] = None) -> List[DispatcherRecord]:
    """Build one record per (dispatcher, category) within the last week.

    Each dispatcher gets a base success/dispatch rate so their records stay
    consistent across categories; dates fall in working hours.
    """
    rng = np.random.default_rng(seed)
    now = now or datetime.now()

    def randint(low: int, high: int) -> int:
        return int(rng.integers(low, high + 1))

    records: List[DispatcherRecord] = []
    for index, name in enumerate(DISPATCHER_NAMES):
        base_success = randint(60, 90)
        base_dispatch = randint(70, 95)
        for category in PROJECT_CATEGORIES[1:]:
            item_date = (now - timedelta(days=randint(0, LOOKBACK_DAYS))).replace(
                hour=randint(*WORK_HOURS), minute=randint(0, 59), second=0, microsecond=0
            )
            records.append(
                DispatcherRecord(
                    id=f"{index}-{category}-{int(item_date.timestamp() * 1000)}",
                    name=name,
                    success_rate=float(min(100, max(0, base_success + randint(-10, 10)))),
                    dispatch_rate=float(min(100, max(0, base_dispatch + randint(-10, 10)))),
                    avg_revenue=float(randint(150, 500)),
                    dispatch_30min_rate=float(randint(50, 95)),
                    total_orders=randint(20, 150),
                    avg_response_time=float(randint(5, 45)),
                    project_category=category,
                    date=item_date,
                )
            )
    return records


@lru_cache(maxsize=4)
def _load_dashboard_data_cached(seed: Optional[int]) -> Dict[str, object]:
    records = generate_mock_records(seed=seed)
    df = records_frame(records)
    logger.info("generated %d dispatcher records (seed=%s)", len(df), seed)
    return {
        "records": df,
        "categories": list(PROJECT_CATEGORIES),
        "generated_at": datetime.now(),
    }


def load_dashboard_data(seed: Optional[int] = None) -> Dict[str, object]:
    return _load_dashboard_data_cached(DEFAULT_SEED if seed is None else seed)


def find_record(df: pd.DataFrame, record_id: str) -> Optional[DispatcherRecord]:
    match = df[df["id"].astype(str) == str(record_id)]
    if match.empty:
        return None
    return DispatcherRecord.from_row(match.iloc[0])


def prepare_context(
    filters: dict | FilterCriteria,
    data_ctx: Dict[str, object],
    sort: dict | SortSpec | None = None,
) -> Dict[str, object]:
    records: pd.DataFrame = data_ctx.get("records", pd.DataFrame(columns=RECORD_COLUMNS)).copy()
    filt = filters if isinstance(filters, FilterCriteria) else normalize_filters(filters)
    sort_spec = sort if isinstance(sort, SortSpec) else normalize_sort(sort or {})

    filtered_records = filter_records(records, filt)
    sorted_records = sort_records(filtered_records, sort_spec)
    return {
        "filters": filt,
        "sort": sort_spec,
        "records": records,
        "filtered_records": filtered_records,
        "sorted_records": sorted_records,
        "visible_ids": [str(x) for x in sorted_records["id"].tolist()],
    }


def round_half_up(value: object, ndigits: int = 0) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    q = Decimal(10) ** -ndigits
    # Exact binary value, so .x5 ties round like JS toFixed.
    return float(Decimal(float(value)).quantize(q, rounding=ROUND_HALF_UP))


def format_metric_value(value: object, kind: str) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    v = float(value)
    text = f"{v:,.0f}" if v.is_integer() else f"{v:,.1f}"
    if kind == "percent":
        return f"{text}%"
    if kind == "currency":
        return f"¥{text}"
    if kind == "minutes":
        return f"{text}分"
    return text


def format_delta(delta: float, kind: str) -> str:
    if delta == 0:
        return "-"
    sign = "+" if delta > 0 else ""
    if kind == "percent":
        return f"{sign}{delta:.1f}%"
    return f"{sign}{int(np.floor(delta))}"


DISPATCH_30MIN_TIERS = ((80, "good"), (60, "fair"))


def dispatch_30min_tier(value: object) -> str:
    """Badge tier for the 30-minute dispatch rate: >=80 good, >=60 fair, else poor."""
    if value is None or pd.isna(value):
        return "poor"
    for floor, tier in DISPATCH_30MIN_TIERS:
        if float(value) >= floor:
            return tier
    return "poor"
