from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Optional

from dispatch_core.filters import FilterCriteria, SortSpec, next_sort, normalize_filters
from dispatch_core.selection import clear_selection, toggle_all, toggle_selection


@dataclass(frozen=True)
class DashboardState:
    filters: FilterCriteria = field(default_factory=FilterCriteria)
    sort: SortSpec = field(default_factory=SortSpec)
    selected_ids: FrozenSet[str] = field(default_factory=frozenset)


def apply_action(
    state: DashboardState,
    action: Dict[str, Any],
    *,
    visible_ids: Optional[Iterable[str]] = None,
) -> DashboardState:
    """Return the state that follows `action`.

    Actions are dicts with a "type" key:
    - {"type": "set_filter", "field": "search_query", "value": "张"}
    - {"type": "set_sort", "field": "total_orders"}
    - {"type": "toggle_select", "id": "0-家电安装-..."}
    - {"type": "toggle_all"}  (needs visible_ids)
    - {"type": "clear_selection"}
    """
    kind = action.get("type")
    if kind == "set_filter":
        raw = asdict(state.filters)
        raw[action["field"]] = action.get("value")
        return replace(state, filters=normalize_filters(raw))
    if kind == "set_sort":
        return replace(state, sort=next_sort(state.sort, action["field"]))
    if kind == "toggle_select":
        return replace(state, selected_ids=toggle_selection(state.selected_ids, str(action["id"])))
    if kind == "toggle_all":
        return replace(state, selected_ids=toggle_all(state.selected_ids, visible_ids or []))
    if kind == "clear_selection":
        return replace(state, selected_ids=clear_selection())
    raise ValueError(f"Unknown dashboard action: {kind!r}")
