from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from src.core.supabase import SupabaseClient
from src.models.scoreboard import (
    BadgeAwardRecord,
    CompletedTaskRecord,
    EmployeeRecord,
    MonthlyAggregateRecord,
    MonthlyTargetRecord,
    YearlyAggregateRecord,
)

COMPLETED_STATUSES = ("completed", "approved")
EMPLOYEE_COLUMNS = "id,name,email,rank,is_admin,created_at"
TASK_COLUMNS = "id,assigned_to,status,completed_at,points_override,type:project_types(points)"
MONTHLY_SCORE_COLUMNS = "employee_id,month,year,total_points,project_count"
YEARLY_SCORE_COLUMNS = "employee_id,year,total_points,project_count"
TARGET_COLUMNS = "employee_id,month,year,target_points"
BADGE_AWARD_COLUMNS = "employee_id,badge_index,badge_key,awarded_at,run_id"


class ScoreboardReader(Protocol):
    """Read port over the scoreboard data store, plus the optional badge write-back."""

    def list_employees(self) -> List[EmployeeRecord]: ...

    def get_employee(self, employee_id: str) -> Optional[EmployeeRecord]: ...

    def list_monthly_aggregates(self, years: Sequence[int]) -> List[MonthlyAggregateRecord]: ...

    def list_monthly_aggregates_for_period(self, month: int, year: int) -> List[MonthlyAggregateRecord]: ...

    def list_yearly_aggregates(self, years: Sequence[int]) -> List[YearlyAggregateRecord]: ...

    def list_monthly_targets(self, employee_id: str, years: Sequence[int]) -> List[MonthlyTargetRecord]: ...

    def list_monthly_targets_for_period(self, month: int, year: int) -> List[MonthlyTargetRecord]: ...

    def list_completed_tasks(
        self, employee_id: str, start: datetime, end: datetime
    ) -> List[CompletedTaskRecord]: ...

    def list_completed_tasks_for_period(self, start: datetime, end: datetime) -> List[CompletedTaskRecord]: ...

    def list_task_completion_years(self, employee_id: str) -> List[int]: ...

    def list_badge_awards(self, employee_ids: Sequence[str]) -> List[BadgeAwardRecord]: ...

    def upsert_badge_awards(self, awards: Sequence[BadgeAwardRecord]) -> List[BadgeAwardRecord]: ...


def _to_iso_utc(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _in_filter(values: Sequence[Any]) -> str:
    return f"in.({','.join(str(value) for value in values)})"


def to_completed_task(row: Dict[str, Any]) -> Optional[CompletedTaskRecord]:
    if not row.get("completed_at") or not row.get("assigned_to"):
        return None
    task_type = row.get("type") or {}
    return CompletedTaskRecord(
        id=row.get("id"),
        employee_id=str(row["assigned_to"]),
        completed_at=row["completed_at"],
        points_override=row.get("points_override"),
        type_points=task_type.get("points") if isinstance(task_type, dict) else None,
    )


class ScoreboardRepository:
    def __init__(self, client: Optional[SupabaseClient] = None) -> None:
        self.client = client or SupabaseClient()

    def list_employees(self) -> List[EmployeeRecord]:
        rows = self.client.select_all(
            table="employees",
            select=EMPLOYEE_COLUMNS,
            filters=[("is_admin", "eq.false")],
            order="created_at.asc",
        )
        return [EmployeeRecord.model_validate(row) for row in rows]

    def get_employee(self, employee_id: str) -> Optional[EmployeeRecord]:
        rows = self.client.select(
            table="employees",
            select=EMPLOYEE_COLUMNS,
            filters=[("id", f"eq.{employee_id}")],
            limit=1,
        )
        return EmployeeRecord.model_validate(rows[0]) if rows else None

    def list_monthly_aggregates(self, years: Sequence[int]) -> List[MonthlyAggregateRecord]:
        if not years:
            return []
        rows = self.client.select_all(
            table="monthly_scores",
            select=MONTHLY_SCORE_COLUMNS,
            filters=[("year", _in_filter(years))],
            order="year.desc,month.desc,total_points.desc",
        )
        return [self._to_monthly_aggregate(row) for row in rows]

    def list_monthly_aggregates_for_period(self, month: int, year: int) -> List[MonthlyAggregateRecord]:
        rows = self.client.select_all(
            table="monthly_scores",
            select=MONTHLY_SCORE_COLUMNS,
            filters=[("month", f"eq.{month}"), ("year", f"eq.{year}")],
            order="total_points.desc",
        )
        return [self._to_monthly_aggregate(row) for row in rows]

    def list_yearly_aggregates(self, years: Sequence[int]) -> List[YearlyAggregateRecord]:
        if not years:
            return []
        rows = self.client.select_all(
            table="yearly_scores",
            select=YEARLY_SCORE_COLUMNS,
            filters=[("year", _in_filter(years))],
            order="year.desc,total_points.desc",
        )
        return [
            YearlyAggregateRecord(
                employee_id=str(row["employee_id"]),
                year=row["year"],
                total_points=row.get("total_points") or 0,
                task_count=row.get("project_count") or 0,
            )
            for row in rows
        ]

    def list_monthly_targets(self, employee_id: str, years: Sequence[int]) -> List[MonthlyTargetRecord]:
        if not years:
            return []
        rows = self.client.select_all(
            table="monthly_targets",
            select=TARGET_COLUMNS,
            filters=[("employee_id", f"eq.{employee_id}"), ("year", _in_filter(years))],
            order="year.desc,month.desc",
        )
        return [MonthlyTargetRecord.model_validate(row) for row in rows]

    def list_monthly_targets_for_period(self, month: int, year: int) -> List[MonthlyTargetRecord]:
        rows = self.client.select_all(
            table="monthly_targets",
            select=TARGET_COLUMNS,
            filters=[("month", f"eq.{month}"), ("year", f"eq.{year}")],
        )
        return [MonthlyTargetRecord.model_validate(row) for row in rows]

    def list_completed_tasks(
        self, employee_id: str, start: datetime, end: datetime
    ) -> List[CompletedTaskRecord]:
        filters = self._completed_task_filters(start, end)
        filters.append(("assigned_to", f"eq.{employee_id}"))
        return self._select_completed_tasks(filters)

    def list_completed_tasks_for_period(self, start: datetime, end: datetime) -> List[CompletedTaskRecord]:
        return self._select_completed_tasks(self._completed_task_filters(start, end))

    def list_task_completion_years(self, employee_id: str) -> List[int]:
        rows = self.client.select_all(
            table="projects",
            select="completed_at",
            filters=[
                ("assigned_to", f"eq.{employee_id}"),
                ("status", _in_filter(COMPLETED_STATUSES)),
                ("completed_at", "not.is.null"),
            ],
            order="completed_at.desc",
        )
        years = {int(str(row["completed_at"])[:4]) for row in rows if row.get("completed_at")}
        return sorted(years, reverse=True)

    def list_badge_awards(self, employee_ids: Sequence[str]) -> List[BadgeAwardRecord]:
        if not employee_ids:
            return []
        awards: List[BadgeAwardRecord] = []
        chunk_size = 100
        unique_ids = sorted(set(employee_ids))
        for start in range(0, len(unique_ids), chunk_size):
            chunk = unique_ids[start : start + chunk_size]
            rows = self.client.select_all(
                table="employee_badge_awards",
                select=BADGE_AWARD_COLUMNS,
                filters=[("employee_id", _in_filter(chunk))],
                order="awarded_at.asc",
            )
            awards.extend(BadgeAwardRecord.model_validate(row) for row in rows)
        return awards

    def upsert_badge_awards(self, awards: Sequence[BadgeAwardRecord]) -> List[BadgeAwardRecord]:
        if not awards:
            return []
        payload = [award.model_dump(mode="json") for award in awards]
        rows = self.client.insert(
            table="employee_badge_awards",
            payload=payload,
            upsert=True,
            on_conflict="employee_id,badge_index",
        )
        return [BadgeAwardRecord.model_validate(row) for row in rows]

    def _select_completed_tasks(self, filters: List[Tuple[str, str]]) -> List[CompletedTaskRecord]:
        rows = self.client.select_all(
            table="projects",
            select=TASK_COLUMNS,
            filters=filters,
            order="completed_at.asc,id.asc",
        )
        tasks = [to_completed_task(row) for row in rows]
        return [task for task in tasks if task is not None]

    @staticmethod
    def _completed_task_filters(start: datetime, end: datetime) -> List[Tuple[str, str]]:
        return [
            ("status", _in_filter(COMPLETED_STATUSES)),
            ("completed_at", "not.is.null"),
            ("completed_at", f"gte.{_to_iso_utc(start)}"),
            ("completed_at", f"lt.{_to_iso_utc(end)}"),
        ]

    @staticmethod
    def _to_monthly_aggregate(row: Dict[str, Any]) -> MonthlyAggregateRecord:
        return MonthlyAggregateRecord(
            employee_id=str(row["employee_id"]),
            month=row["month"],
            year=row["year"],
            total_points=row.get("total_points") or 0,
            task_count=row.get("project_count") or 0,
        )
