from __future__ import annotations

from typing import List, Optional

from pydantic import ConfigDict, Field

from src.shared.base import BaseSchema


class MonthlyLeaderboardFilters(BaseSchema):
    # Keep query parameter names in snake_case for API contract consistency.
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=2000, le=2100)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=200)


class YearlyLeaderboardFilters(BaseSchema):
    # Keep query parameter names in snake_case for API contract consistency.
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    year: Optional[int] = Field(default=None, ge=2000, le=2100)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=200)


class EmployeeIdentity(BaseSchema):
    employee_id: str
    name: str
    email: Optional[str] = None
    rank: Optional[int] = None


class LeaderboardRow(BaseSchema):
    rank: int
    employee_id: str
    employee_name: str
    total_points: int
    task_count: int


class LeaderboardResponse(BaseSchema):
    period_type: str
    month: Optional[int] = None
    year: int
    is_complete: bool
    rankings: List[LeaderboardRow]


class TargetProgress(BaseSchema):
    month: int
    year: int
    target_points: int
    obtained_points: int
    completed_pct: int
    remaining_points: int
    is_achieved: bool
    is_default_target: bool


class EmployeeSummaryResponse(BaseSchema):
    employee: EmployeeIdentity
    current_month_points: int
    current_month_task_count: int
    current_month_rank: Optional[int] = None
    current_year_points: int
    current_year_task_count: int
    current_year_rank: Optional[int] = None
    all_time_points: int
    target_progress: TargetProgress
    available_years: List[int]
