from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Literal, Optional

import pandas as pd

ALL_CATEGORIES = "全部"
CATEGORY_ALIASES = {"", "ALL"}

SORT_FIELDS: List[str] = [
    "name",
    "success_rate",
    "dispatch_rate",
    "avg_revenue",
    "dispatch_30min_rate",
    "total_orders",
    "avg_response_time",
]
DEFAULT_SORT_FIELD = "success_rate"

SortDirection = Literal["asc", "desc"]

DATETIME_INPUT_FORMAT = "%Y-%m-%dT%H:%M"


@dataclass(frozen=True)
class FilterCriteria:
    start_date: str = ""
    end_date: str = ""
    project_category: str = ALL_CATEGORIES
    search_query: str = ""


@dataclass(frozen=True)
class SortSpec:
    field: str = DEFAULT_SORT_FIELD
    direction: SortDirection = "desc"


def normalize_filters(raw: dict) -> FilterCriteria:
    category = raw.get("project_category")
    category = ALL_CATEGORIES if category is None or str(category).strip() in CATEGORY_ALIASES else str(category)
    return FilterCriteria(
        start_date=str(raw.get("start_date") or ""),
        end_date=str(raw.get("end_date") or ""),
        project_category=category,
        search_query=str(raw.get("search_query") or "").strip(),
    )


def default_filters(now: Optional[datetime] = None) -> FilterCriteria:
    """Last seven days, starting at 08:00, up to now."""
    now = now or datetime.now()
    start = (now - timedelta(days=7)).replace(hour=8, minute=0, second=0, microsecond=0)
    return FilterCriteria(
        start_date=start.strftime(DATETIME_INPUT_FORMAT),
        end_date=now.strftime(DATETIME_INPUT_FORMAT),
    )


def parse_bound(value: object) -> Optional[pd.Timestamp]:
    """Parse a date-time bound; anything unparsable is treated as absent."""
    if value is None or value == "":
        return None
    if not isinstance(value, (datetime, pd.Timestamp)):
        value = str(value)
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        # Records carry naive local time.
        ts = pd.Timestamp(ts.to_pydatetime().astimezone().replace(tzinfo=None))
    return ts


def filter_records(df: pd.DataFrame, criteria: FilterCriteria) -> pd.DataFrame:
    if df.empty:
        return df.copy()

    mask = pd.Series(True, index=df.index)
    if criteria.project_category != ALL_CATEGORIES:
        mask &= df["project_category"] == criteria.project_category

    if criteria.search_query:
        q = criteria.search_query.lower()
        mask &= df["name"].astype(str).str.lower().str.contains(q, regex=False, na=False)

    start = parse_bound(criteria.start_date)
    end = parse_bound(criteria.end_date)
    if start is not None and end is not None:
        dates = pd.to_datetime(df["date"])
        mask &= (dates >= start) & (dates <= end)

    return df[mask].copy()


def normalize_sort(raw: dict) -> SortSpec:
    field = raw.get("field") or DEFAULT_SORT_FIELD
    if field not in SORT_FIELDS:
        field = DEFAULT_SORT_FIELD
    direction = raw.get("direction") or "desc"
    if direction not in ("asc", "desc"):
        direction = "desc"
    return SortSpec(field=field, direction=direction)


def next_sort(current: SortSpec, field: str) -> SortSpec:
    """Clicking the active column flips direction; a new column starts descending."""
    if field not in SORT_FIELDS:
        return current
    if current.field == field:
        return SortSpec(field=field, direction="asc" if current.direction == "desc" else "desc")
    return SortSpec(field=field, direction="desc")


def sort_records(df: pd.DataFrame, sort: SortSpec) -> pd.DataFrame:
    if df.empty or sort.field not in df.columns:
        return df.copy()
    return df.sort_values(sort.field, ascending=sort.direction == "asc", kind="stable")
