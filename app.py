import pandas as pd
import streamlit as st
from contextlib import contextmanager
from datetime import datetime, time
from typing import Dict, Optional

import numpy as np

from dispatch_core import data as dc
from dispatch_core.data import METRIC_LABELS, dispatch_30min_tier, format_delta, format_metric_value
from dispatch_core.filters import DATETIME_INPUT_FORMAT, SORT_FIELDS, default_filters, parse_bound
from dispatch_core.metrics_comparison import compute_comparison
from dispatch_core.metrics_individual import compute_individual_analysis
from dispatch_core.metrics_overview import compute_overview_metrics
from dispatch_core.selection import selected_records, selection_mode
from dispatch_core.state import DashboardState, apply_action

TABLE_COLUMNS = {
    "name": "姓名",
    "success_rate": "成单率",
    "dispatch_rate": "派单率",
    "avg_revenue": "每单业绩",
    "dispatch_30min_rate": "30分钟派单率",
    "total_orders": "总单量",
    "project_category": "维修项目",
}
SORT_LABELS = {"name": "姓名", **{k: v[0] for k, v in METRIC_LABELS.items()}}
DIRECTION_COLORS = {"up": "#dc2626", "down": "#16a34a", "neutral": "#94a3b8"}
TIER_STYLES = {
    "good": "background-color: #dcfce7; color: #166534",
    "fair": "background-color: #fef9c3; color: #854d0e",
    "poor": "background-color: #fee2e2; color: #991b1b",
}
DIRECTION_ARROWS = {"up": "↑", "down": "↓", "neutral": ""}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .overview-bar {background: #F0F8FF;border: 1px solid #dbeafe;border-radius: 12px;padding: 10px 16px;margin-bottom: 12px;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.9rem;color: #2563eb;}
        .chip {background: #dbeafe;border-radius: 14px;padding: 2px 10px;font-size: 0.8rem;color: #1d4ed8;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def get_state() -> DashboardState:
    if "dashboard_state" not in st.session_state:
        st.session_state["dashboard_state"] = DashboardState(filters=default_filters())
        st.session_state["table_version"] = 0
    return st.session_state["dashboard_state"]


def dispatch(action: Dict[str, object], *, visible_ids=None):
    st.session_state["dashboard_state"] = apply_action(get_state(), action, visible_ids=visible_ids)
    # A fresh editor key drops checkbox edits already applied to the state.
    st.session_state["table_version"] = st.session_state.get("table_version", 0) + 1


def _split_bound(value: str, fallback: datetime):
    ts = parse_bound(value)
    dt = ts.to_pydatetime() if ts is not None else fallback
    return dt.date(), dt.time().replace(second=0, microsecond=0)


def render_filters(state: DashboardState, categories):
    now = datetime.now()
    start_d, start_t = _split_bound(state.filters.start_date, now)
    end_d, end_t = _split_bound(state.filters.end_date, now)
    with card("高级筛选"):
        c1, c2, c3, c4, c5 = st.columns([2, 2, 1, 2, 1])
        category = c1.selectbox(
            "维修项目",
            options=categories,
            index=categories.index(state.filters.project_category) if state.filters.project_category in categories else 0,
        )
        new_start_d = c2.date_input("开始日期", value=start_d)
        new_start_t = c3.time_input("开始时间", value=start_t)
        new_end_d = c4.date_input("结束日期", value=end_d)
        new_end_t = c5.time_input("结束时间", value=end_t)
        search = st.text_input("搜索姓名...", value=state.filters.search_query)

    new_values = {
        "project_category": category,
        "start_date": datetime.combine(new_start_d, new_start_t or time(0)).strftime(DATETIME_INPUT_FORMAT),
        "end_date": datetime.combine(new_end_d, new_end_t or time(0)).strftime(DATETIME_INPUT_FORMAT),
        "search_query": search.strip(),
    }
    changed = False
    for field, value in new_values.items():
        if getattr(state.filters, field) != value:
            dispatch({"type": "set_filter", "field": field, "value": value})
            changed = True
    if changed:
        st.rerun()


def render_overview_bar(filtered: pd.DataFrame):
    metrics = compute_overview_metrics(filtered)
    st.markdown("<div class='overview-bar'><b>数据概览</b></div>", unsafe_allow_html=True)
    if metrics is None:
        st.info("当前筛选条件下暂无数据。")
        return
    cols = st.columns(6)
    cols[0].metric("成单率", format_metric_value(metrics["avg_success"], "percent"))
    cols[1].metric("派单率", format_metric_value(metrics["avg_dispatch"], "percent"))
    cols[2].metric("每单业绩", format_metric_value(metrics["avg_revenue"], "currency"))
    cols[3].metric("30分派单率", format_metric_value(metrics["avg_30min"], "percent"))
    cols[4].metric("当日总单量", format_metric_value(metrics["total_orders"], "number"))
    cols[5].metric("平均响应", format_metric_value(metrics["avg_response"], "minutes"))


def _individual_analysis(record: dc.DispatcherRecord) -> Dict[str, object]:
    # Keep the simulated baselines stable across reruns for the same record.
    cache = st.session_state.setdefault("analysis_cache", {})
    if record.id not in cache:
        cache[record.id] = compute_individual_analysis(record, rng=np.random.default_rng())
    return cache[record.id]


def render_individual_analysis(record: dc.DispatcherRecord):
    analysis = _individual_analysis(record)
    header, close = st.columns([8, 1])
    header.markdown(f"### 个人深度分析 · {record.name} <span class='chip'>{record.project_category}</span>", unsafe_allow_html=True)
    if close.button("关闭", help="关闭分析视图"):
        dispatch({"type": "clear_selection"})
        st.rerun()

    cols = st.columns(3)
    for col, (granularity, period) in zip(cols, analysis["periods"].items()):
        rows = []
        for row in period["rows"]:
            ratio = "0.0%" if row["direction"] == "neutral" else f"{DIRECTION_ARROWS[row['direction']]}{abs(row['ratio']):.1f}%"
            rows.append(
                {
                    "指标": row["label"],
                    period["prev"]: format_metric_value(row["previous"], row["kind"]),
                    period["curr"]: format_metric_value(row["current"], row["kind"]),
                    "差值": format_delta(row["delta"], row["kind"]),
                    "环比": ratio,
                    "_direction": row["direction"],
                }
            )
        table = pd.DataFrame(rows)
        styled = table.drop(columns=["_direction"]).style.apply(
            lambda r: [
                f"color: {DIRECTION_COLORS[table.loc[r.name, '_direction']]}" if c in ("差值", "环比") else ""
                for c in r.index
            ],
            axis=1,
        )
        with col:
            with card(period["title"]):
                st.dataframe(styled, use_container_width=True, hide_index=True)
    st.caption("环比数据为模拟值，仅用于演示。")


def render_comparison(selected: pd.DataFrame):
    payload = compute_comparison(selected)
    header, clear = st.columns([8, 1])
    header.markdown(f"### 对比分析 <span class='chip'>已选 {payload['count']} 人</span>", unsafe_allow_html=True)
    if clear.button("清空选择"):
        dispatch({"type": "clear_selection"})
        st.rerun()
    specs = list(payload["charts"].values())
    for start in range(0, len(specs), 3):
        cols = st.columns(3)
        for col, spec in zip(cols, specs[start:start + 3]):
            with col:
                st.vega_lite_chart(spec, use_container_width=True)
    st.caption(f"共对比 {payload['count']} 位成员，数据基于所选时间范围。")


def render_sort_controls(state: DashboardState):
    c1, c2 = st.columns([3, 1])
    field = c1.selectbox(
        "排序字段",
        options=SORT_FIELDS,
        index=SORT_FIELDS.index(state.sort.field),
        format_func=lambda f: SORT_LABELS.get(f, f),
    )
    if field != state.sort.field:
        dispatch({"type": "set_sort", "field": field})
        st.rerun()
    arrow = "↓ 降序" if state.sort.direction == "desc" else "↑ 升序"
    if c2.button(arrow):
        dispatch({"type": "set_sort", "field": state.sort.field})
        st.rerun()


def render_table(state: DashboardState, sorted_df: pd.DataFrame):
    visible_ids = sorted_df["id"].astype(str).tolist()
    b1, b2, _ = st.columns([1, 1, 6])
    if b1.button("全选/取消全选", disabled=not visible_ids):
        dispatch({"type": "toggle_all"}, visible_ids=visible_ids)
        st.rerun()
    if b2.button("清空选择", key="table_clear", disabled=not state.selected_ids):
        dispatch({"type": "clear_selection"})
        st.rerun()

    if sorted_df.empty:
        st.info("未找到符合条件的派单员。")
        return

    display = sorted_df[["id"] + list(TABLE_COLUMNS)].copy()
    display.insert(0, "selected", display["id"].astype(str).isin(state.selected_ids))
    display = display.rename(columns=TABLE_COLUMNS)
    styled = display.style.map(lambda v: TIER_STYLES[dispatch_30min_tier(v)], subset=["30分钟派单率"])
    edited = st.data_editor(
        styled,
        key=f"table_{st.session_state.get('table_version', 0)}",
        hide_index=True,
        use_container_width=True,
        column_config={
            "selected": st.column_config.CheckboxColumn("选择"),
            "id": None,
            "成单率": st.column_config.NumberColumn(format="%d%%"),
            "派单率": st.column_config.NumberColumn(format="%d%%"),
            "每单业绩": st.column_config.NumberColumn(format="¥%d"),
            "30分钟派单率": st.column_config.NumberColumn(format="%d%%"),
        },
        disabled=[c for c in display.columns if c != "selected"],
    )
    toggled = edited.loc[edited["selected"] != display["selected"], "id"].astype(str).tolist()
    if toggled:
        for record_id in toggled:
            dispatch({"type": "toggle_select", "id": record_id})
        st.rerun()
    st.caption(f"显示 {len(sorted_df)} 条记录 · 已选择 {len(state.selected_ids)} 项")


# ---------- UI setup ----------
st.set_page_config(page_title="派单员绩效看板", layout="wide")
inject_base_styles()
st.title("派单员绩效看板")

data_ctx = dc.load_dashboard_data()
records: pd.DataFrame = data_ctx.get("records", pd.DataFrame())
if records.empty:
    st.error("No dispatcher records available.")
    st.stop()

state = get_state()
ctx = dc.prepare_context(state.filters, data_ctx, state.sort)
filtered_records = ctx["filtered_records"]
sorted_records = ctx["sorted_records"]

render_overview_bar(filtered_records)
if st.toggle("点这高级筛选", value=False):
    render_filters(state, data_ctx.get("categories", dc.PROJECT_CATEGORIES))

mode = selection_mode(state.selected_ids)
selected = selected_records(records, state.selected_ids)
if mode == "individual" and not selected.empty:
    render_individual_analysis(dc.DispatcherRecord.from_row(selected.iloc[0]))
elif mode == "comparison":
    render_comparison(selected)

render_sort_controls(state)
render_table(state, sorted_records)

st.download_button(
    "导出 CSV",
    data=sorted_records.to_csv(index=False).encode("utf-8-sig"),
    file_name="dispatchers.csv",
    mime="text/csv",
    disabled=sorted_records.empty,
)
