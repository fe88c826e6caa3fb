from __future__ import annotations

from dataclasses import asdict
import logging
import math
from typing import Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import Response
from fastapi.encoders import jsonable_encoder

from dispatch_api.schemas import (
    ComparisonRequest,
    NextSortRequest,
    SelectionResponse,
    TableRequest,
    ToggleAllRequest,
    ToggleRequest,
)
from dispatch_core.data import find_record, load_dashboard_data, prepare_context
from dispatch_core.filters import SORT_FIELDS, next_sort, normalize_sort
from dispatch_core.metrics_comparison import compute_comparison
from dispatch_core.metrics_individual import compute_individual_analysis
from dispatch_core.metrics_overview import compute_overview
from dispatch_core.selection import selected_records, selection_mode, toggle_all, toggle_selection


CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]

app = FastAPI(title="Dispatcher Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _context(request: TableRequest) -> dict:
    data_ctx = load_dashboard_data()
    return prepare_context(request.filters.model_dump(), data_ctx, request.sort.model_dump())


def _selection(selected) -> SelectionResponse:
    ids = sorted(selected)
    return SelectionResponse(selected_ids=ids, mode=selection_mode(ids))


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


@app.get("/meta/categories")
def meta_categories():
    try:
        data_ctx = load_dashboard_data()
        return _json({"categories": data_ctx.get("categories", [])})
    except Exception as exc:
        logger.exception("meta_categories failed")
        return _error(exc)


@app.get("/meta/sort-fields")
def meta_sort_fields():
    return _json({"fields": SORT_FIELDS})


@app.post("/overview")
def overview(request: TableRequest):
    try:
        ctx = _context(request)
        return _json(compute_overview(ctx["filters"], ctx))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/selection/toggle", response_model=SelectionResponse)
def selection_toggle(request: ToggleRequest):
    return _selection(toggle_selection(request.selected_ids, request.record_id))


@app.post("/selection/toggle-all")
def selection_toggle_all(request: ToggleAllRequest):
    try:
        ctx = _context(request)
        return _selection(toggle_all(request.selected_ids, ctx["visible_ids"]))
    except Exception as exc:
        logger.exception("selection_toggle_all failed")
        return _error(exc)


@app.post("/sort/next")
def sort_next(request: NextSortRequest):
    current = normalize_sort(request.sort.model_dump())
    return _json(asdict(next_sort(current, request.field)))


@app.post("/comparison")
def comparison(request: ComparisonRequest):
    try:
        data_ctx = load_dashboard_data()
        selected = selected_records(data_ctx["records"], request.selected_ids)
        return _json(compute_comparison(selected))
    except Exception as exc:
        logger.exception("comparison failed")
        return _error(exc)


@app.post("/individual/{record_id}")
def individual(record_id: str, seed: Optional[int] = Query(default=None)):
    try:
        data_ctx = load_dashboard_data()
        record = find_record(data_ctx["records"], record_id)
        if record is None:
            return JSONResponse(status_code=404, content={"error": f"record {record_id} not found", "type": "NotFound"})
        rng = np.random.default_rng(seed)
        return _json(compute_individual_analysis(record, rng=rng))
    except Exception as exc:
        logger.exception("individual failed")
        return _error(exc)


@app.post("/export/table")
def export_table(request: TableRequest):
    ctx = _context(request)
    export_df = ctx.get("sorted_records")
    if export_df is None or not hasattr(export_df, "to_csv"):
        export_df = pd.DataFrame()
    csv_bytes = export_df.to_csv(index=False).encode("utf-8-sig")
    return Response(content=csv_bytes, media_type="text/csv", headers={"Content-Disposition": "attachment; filename=dispatchers.csv"})
