from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScoreboardRecord(BaseModel):
    # Snapshot rows are shared across threads during badge evaluation.
    model_config = ConfigDict(frozen=True)


class EmployeeRecord(ScoreboardRecord):
    id: str
    name: str = ""
    email: Optional[str] = None
    rank: Optional[int] = None
    is_admin: bool = False
    created_at: Optional[datetime] = None


class CompletedTaskRecord(ScoreboardRecord):
    id: Optional[str] = None
    employee_id: str
    completed_at: datetime
    points_override: Optional[int] = None
    type_points: Optional[int] = None

    @field_validator("completed_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps from the data store are UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def awarded_points(self) -> int:
        if self.points_override is not None:
            return self.points_override
        return self.type_points or 0


class MonthlyAggregateRecord(ScoreboardRecord):
    employee_id: str
    month: int = Field(ge=1, le=12)
    year: int
    total_points: int = 0
    task_count: int = 0


class YearlyAggregateRecord(ScoreboardRecord):
    employee_id: str
    year: int
    total_points: int = 0
    task_count: int = 0


class MonthlyTargetRecord(ScoreboardRecord):
    employee_id: str
    month: int = Field(ge=1, le=12)
    year: int
    target_points: int


class BadgeAwardRecord(ScoreboardRecord):
    employee_id: str
    badge_index: int = Field(ge=0, le=11)
    badge_key: str
    awarded_at: datetime
    run_id: Optional[str] = None
