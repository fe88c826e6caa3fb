from datetime import datetime, timedelta

from dispatch_core import data as dc
from dispatch_core.data import (
    DISPATCHER_NAMES,
    PROJECT_CATEGORIES,
    RECORD_COLUMNS,
    DispatcherRecord,
    dispatch_30min_tier,
    find_record,
    format_delta,
    format_metric_value,
    generate_mock_records,
    load_dashboard_data,
    prepare_context,
    records_frame,
    round_half_up,
)
from dispatch_core.filters import FilterCriteria, SortSpec

NOW = datetime(2024, 3, 15, 12, 0)


def test_mock_records_cover_every_dispatcher_and_category():
    records = generate_mock_records(seed=1, now=NOW)

    assert len(records) == len(DISPATCHER_NAMES) * (len(PROJECT_CATEGORIES) - 1)
    assert len({r.id for r in records}) == len(records)
    assert {r.project_category for r in records} == set(PROJECT_CATEGORIES[1:])
    assert {r.name for r in records} == set(DISPATCHER_NAMES)


def test_mock_records_respect_ranges():
    for r in generate_mock_records(seed=2, now=NOW):
        assert 0 <= r.success_rate <= 100
        assert 0 <= r.dispatch_rate <= 100
        assert 50 <= r.dispatch_30min_rate <= 95
        assert 150 <= r.avg_revenue <= 500
        assert 20 <= r.total_orders <= 150
        assert 5 <= r.avg_response_time <= 45
        assert 8 <= r.date.hour <= 20
        assert (NOW - timedelta(days=7)).date() <= r.date.date() <= NOW.date()
        assert r.id.startswith(f"{DISPATCHER_NAMES.index(r.name)}-{r.project_category}-")


def test_mock_records_are_reproducible_with_seed():
    assert generate_mock_records(seed=9, now=NOW) == generate_mock_records(seed=9, now=NOW)


def test_records_frame_round_trips_through_rows():
    records = generate_mock_records(seed=4, now=NOW)[:3]

    df = records_frame(records)

    assert list(df.columns) == RECORD_COLUMNS
    assert DispatcherRecord.from_row(df.iloc[1]) == records[1]


def test_find_record():
    records = generate_mock_records(seed=4, now=NOW)
    df = records_frame(records)

    assert find_record(df, records[7].id) == records[7]
    assert find_record(df, "missing") is None


def test_load_dashboard_data_is_cached_per_seed():
    first = load_dashboard_data(seed=123)
    second = load_dashboard_data(seed=123)

    assert first is second
    assert first["categories"] == PROJECT_CATEGORIES
    assert len(first["records"]) == 50


def test_prepare_context_filters_sorts_and_copies():
    data_ctx = {"records": records_frame(generate_mock_records(seed=5, now=NOW))}

    ctx = prepare_context(FilterCriteria(project_category="暖通空调"), data_ctx, SortSpec(field="total_orders", direction="asc"))

    assert len(ctx["filtered_records"]) == len(DISPATCHER_NAMES)
    assert ctx["sorted_records"]["total_orders"].is_monotonic_increasing
    assert ctx["visible_ids"] == ctx["sorted_records"]["id"].tolist()
    assert ctx["records"] is not data_ctx["records"]


def test_prepare_context_accepts_raw_dicts():
    data_ctx = {"records": records_frame(generate_mock_records(seed=5, now=NOW))}

    ctx = prepare_context({"project_category": "ALL"}, data_ctx, {"field": "bogus"})

    assert len(ctx["filtered_records"]) == 50
    assert ctx["sort"] == SortSpec()


def test_round_half_up():
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(2.5) == 3.0
    assert round_half_up(None) is None
    assert round_half_up(80.05, 1) == 80.0


def test_formatting_helpers():
    assert format_metric_value(80, "percent") == "80%"
    assert format_metric_value(80.3, "percent") == "80.3%"
    assert format_metric_value(1234, "currency") == "¥1,234"
    assert format_metric_value(12.5, "minutes") == "12.5分"
    assert format_metric_value(None, "number") == "N/A"
    assert format_delta(0, "percent") == "-"
    assert format_delta(3, "percent") == "+3.0%"
    assert format_delta(-12.4, "currency") == "-13"
    assert format_delta(7.9, "number") == "+7"


def test_dispatch_30min_tier():
    assert dispatch_30min_tier(95) == "good"
    assert dispatch_30min_tier(80) == "good"
    assert dispatch_30min_tier(79.9) == "fair"
    assert dispatch_30min_tier(60) == "fair"
    assert dispatch_30min_tier(59) == "poor"
    assert dispatch_30min_tier(None) == "poor"


def test_unused_column_formatters_are_gone():
    assert not hasattr(dc, "format_currency_columns")
    assert not hasattr(dc, "format_percent_columns")
