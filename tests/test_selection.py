from datetime import datetime

from dispatch_core.data import DispatcherRecord, records_frame
from dispatch_core.selection import (
    clear_selection,
    selected_records,
    selection_mode,
    toggle_all,
    toggle_selection,
)


def _record(rid: str, name: str, category: str = "家电安装") -> DispatcherRecord:
    return DispatcherRecord(
        id=rid,
        name=name,
        success_rate=80.0,
        dispatch_rate=80.0,
        avg_revenue=300.0,
        dispatch_30min_rate=70.0,
        total_orders=50,
        avg_response_time=15.0,
        project_category=category,
        date=datetime(2024, 1, 10, 10, 0),
    )


def test_toggle_adds_then_removes():
    selected = toggle_selection(frozenset(), "a")
    assert selected == {"a"}

    selected = toggle_selection(selected, "b")
    assert selected == {"a", "b"}

    assert toggle_selection(selected, "a") == {"b"}


def test_toggle_all_scenario():
    visible = ["a", "b"]
    selected = toggle_selection(toggle_selection(frozenset(), "a"), "b")

    cleared = toggle_all(selected, visible)
    assert cleared == frozenset()

    assert toggle_all(cleared, visible) == {"a", "b"}


def test_toggle_all_twice_restores_full_or_empty_selection():
    visible = ["x", "y", "z"]

    assert toggle_all(toggle_all(frozenset(), visible), visible) == frozenset()
    full = frozenset(visible)
    assert toggle_all(toggle_all(full, visible), visible) == full


def test_toggle_all_with_partial_selection_selects_visible():
    assert toggle_all({"x"}, ["x", "y"]) == {"x", "y"}


def test_toggle_all_replaces_stale_ids_with_visible_set():
    assert toggle_all({"stale"}, ["x", "y"]) == {"x", "y"}
    # All visible rows selected already: everything is cleared, stale ids included.
    assert toggle_all({"stale", "x", "y"}, ["x", "y"]) == frozenset()


def test_toggle_all_with_empty_view_clears_selection():
    assert toggle_all({"stale"}, []) == frozenset()


def test_stale_ids_survive_single_toggles():
    selected = toggle_selection({"stale"}, "x")

    assert selected == {"stale", "x"}


def test_clear_selection():
    assert clear_selection() == frozenset()


def test_selection_mode():
    assert selection_mode([]) == "none"
    assert selection_mode(["a"]) == "individual"
    assert selection_mode(["a", "b"]) == "comparison"


def test_selected_records_reads_from_full_frame():
    df = records_frame([_record("a", "张伟"), _record("b", "李强"), _record("c", "王芳")])

    result = selected_records(df, {"c", "a", "missing"})

    assert sorted(result["id"]) == ["a", "c"]
    assert selected_records(df, set()).empty
