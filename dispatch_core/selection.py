from __future__ import annotations

from typing import FrozenSet, Iterable, Literal

import pandas as pd

SelectionMode = Literal["none", "individual", "comparison"]


def toggle_selection(selected: Iterable[str], record_id: str) -> FrozenSet[str]:
    current = set(selected)
    if record_id in current:
        current.discard(record_id)
    else:
        current.add(record_id)
    return frozenset(current)


def toggle_all(selected: Iterable[str], visible_ids: Iterable[str]) -> FrozenSet[str]:
    """Select every visible row, or clear everything if they are all selected already.

    Ids outside the current view do not block the "all selected" check; they
    are dropped together with the rest when the selection is cleared.
    """
    current = frozenset(selected)
    visible = frozenset(visible_ids)
    if visible and visible.issubset(current):
        return frozenset()
    return visible


def clear_selection() -> FrozenSet[str]:
    return frozenset()


def selection_mode(selected: Iterable[str]) -> SelectionMode:
    count = len(frozenset(selected))
    if count == 0:
        return "none"
    if count == 1:
        return "individual"
    return "comparison"


def selected_records(df: pd.DataFrame, selected: Iterable[str]) -> pd.DataFrame:
    ids = {str(x) for x in selected}
    if df.empty or not ids:
        return df.iloc[0:0].copy()
    return df[df["id"].astype(str).isin(ids)].copy()
