from datetime import datetime

from dispatch_core.data import DispatcherRecord, load_dashboard_data, prepare_context, records_frame
from dispatch_core.metrics_overview import compute_overview, compute_overview_metrics


def _record(rid: str, success: float = 80.0, orders: int = 50, revenue: float = 300.0, response: float = 15.0) -> DispatcherRecord:
    return DispatcherRecord(
        id=rid,
        name=f"Dispatcher {rid}",
        success_rate=success,
        dispatch_rate=85.0,
        avg_revenue=revenue,
        dispatch_30min_rate=72.0,
        total_orders=orders,
        avg_response_time=response,
        project_category="家电安装",
        date=datetime(2024, 1, 10, 10, 0),
    )


def test_mean_of_identical_records_is_the_value():
    df = records_frame([_record(str(i)) for i in range(4)])

    metrics = compute_overview_metrics(df)

    assert metrics == {
        "total_orders": 200,
        "avg_success": 80.0,
        "avg_dispatch": 85.0,
        "avg_revenue": 300.0,
        "avg_30min": 72.0,
        "avg_response": 15.0,
    }


def test_empty_input_reports_no_data():
    assert compute_overview_metrics(records_frame([])) is None


def test_means_round_half_up_to_one_decimal():
    df = records_frame(
        [
            _record("1", success=80, revenue=100.25),
            _record("2", success=81, revenue=100.25),
            _record("3", success=81, revenue=100.0),
        ]
    )

    metrics = compute_overview_metrics(df)

    assert metrics["avg_success"] == 80.7
    # (100.25 + 100.25 + 100.0) / 3 == 100.1666...
    assert metrics["avg_revenue"] == 100.2
    assert metrics["total_orders"] == 150


def test_compute_overview_payload():
    data_ctx = {"records": records_frame([_record("1", success=70), _record("2", success=90)])}
    ctx = prepare_context({}, data_ctx, {"field": "success_rate", "direction": "desc"})

    payload = compute_overview(ctx["filters"], ctx)

    assert payload["row_counts"] == {"total": 2, "visible": 2}
    assert [row["id"] for row in payload["table"]] == ["2", "1"]
    assert payload["table"][0]["date"] == "2024-01-10T10:00"
    assert payload["sort"] == {"field": "success_rate", "direction": "desc"}
    assert payload["kpis"]["avg_success"] == 80.0


def test_compute_overview_with_no_matches():
    ctx = prepare_context({"search_query": "nobody"}, load_dashboard_data(seed=11))

    payload = compute_overview(ctx["filters"], ctx)

    assert payload["kpis"] is None
    assert payload["table"] == []
    assert payload["row_counts"]["visible"] == 0


def test_mean_rounds_the_binary_value_at_half_boundaries():
    # 1601 / 20 is stored just below 80.05.
    df = records_frame([_record(str(i), success=80) for i in range(19)] + [_record("x", success=81)])

    assert compute_overview_metrics(df)["avg_success"] == 80.0
