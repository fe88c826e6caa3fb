from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field


class FilterCriteriaModel(BaseModel):
    start_date: str = ""
    end_date: str = ""
    project_category: str = "全部"
    search_query: str = ""


class SortSpecModel(BaseModel):
    field: str = "success_rate"
    direction: Literal["asc", "desc"] = "desc"


class TableRequest(BaseModel):
    filters: FilterCriteriaModel = Field(default_factory=FilterCriteriaModel)
    sort: SortSpecModel = Field(default_factory=SortSpecModel)


class ToggleRequest(BaseModel):
    selected_ids: List[str] = Field(default_factory=list)
    record_id: str


class ToggleAllRequest(TableRequest):
    selected_ids: List[str] = Field(default_factory=list)


class NextSortRequest(BaseModel):
    sort: SortSpecModel = Field(default_factory=SortSpecModel)
    field: str


class ComparisonRequest(BaseModel):
    selected_ids: List[str] = Field(default_factory=list)


class SelectionResponse(BaseModel):
    selected_ids: List[str]
    mode: Literal["none", "individual", "comparison"]
