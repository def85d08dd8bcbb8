"""Pydantic schemas that describe milestone payloads for the API."""

from __future__ import annotations

from typing import Any, Optional, Union

from pydantic import BaseModel, Field

DateInput = Optional[Union[int, str]]


class MilestoneBase(BaseModel):
    notes: Optional[str] = None
    assigned_to: Optional[list[Any]] = None
    start_date: DateInput = None
    end_date: DateInput = None
    order: Optional[int] = None
    progress: Optional[float] = None
    color: Optional[str] = None
    category_ids: Optional[list[int]] = None
    legacy_id: Optional[str] = None
    legacy_milestone_code: Optional[str] = None


class MilestoneCreate(MilestoneBase):
    name: str
    created_by: int


class MilestoneUpdate(MilestoneBase):
    name: Optional[str] = None
    project_id: Optional[int] = None
    created_time_in_utc: Optional[bool] = None
    task_count: Optional[int] = None
    task_open: Optional[int] = None


class MilestoneOut(BaseModel):
    id: int
    project_id: int
    name: str
    notes: str = ""
    assigned_to: list[int] = Field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    start_date_display: Optional[str] = None
    end_date_display: Optional[str] = None
    order: int = 0
    progress: float = 0.0
    color: Optional[str] = None
    category_ids: list[int] = Field(default_factory=list)
    created_by: int
    created_on: Optional[str] = None
    legacy_id: Optional[str] = None
    legacy_milestone_code: Optional[str] = None
    task_count: Optional[int] = None
    task_open: Optional[int] = None
    state: str
