from __future__ import annotations

import json
import logging
from collections import defaultdict
from datetime import datetime, timezone, tzinfo
from threading import Lock
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from src.core.errors import DataUnavailableError
from src.models.scoreboard import (
    BadgeAwardRecord,
    CompletedTaskRecord,
    EmployeeRecord,
    MonthlyAggregateRecord,
    MonthlyTargetRecord,
    YearlyAggregateRecord,
)
from src.repositories.scoreboard_repository import COMPLETED_STATUSES
from src.shared.time import local_date

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class InMemoryScoreboardRepository:
    """Fixture-backed scoreboard store.

    Monthly and yearly aggregates are derived from the completed tasks the same
    way the hosted database rolls them up, so both backends rank identically.
    """

    def __init__(
        self,
        employees: Iterable[EmployeeRecord] = (),
        tasks: Iterable[CompletedTaskRecord] = (),
        targets: Iterable[MonthlyTargetRecord] = (),
        awards: Iterable[BadgeAwardRecord] = (),
        tz: tzinfo = timezone.utc,
    ) -> None:
        self.tz = tz
        self._employees: List[EmployeeRecord] = list(employees)
        self._tasks: List[CompletedTaskRecord] = sorted(tasks, key=lambda task: _as_utc(task.completed_at))
        self._targets: List[MonthlyTargetRecord] = list(targets)
        self._awards: Dict[Tuple[str, int], BadgeAwardRecord] = {
            (award.employee_id, award.badge_index): award for award in awards
        }
        self._awards_lock = Lock()
        self._monthly, self._yearly = self._roll_up(self._tasks)

    @classmethod
    def from_fixture(cls, path: str, tz: tzinfo = timezone.utc) -> "InMemoryScoreboardRepository":
        try:
            with open(path, "r", encoding="utf-8") as fixture_file:
                payload = json.load(fixture_file)
        except (OSError, json.JSONDecodeError) as exc:
            raise DataUnavailableError(f"Failed loading scoreboard fixture {path}", source=path) from exc
        return cls.from_payload(payload, tz=tz)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any], tz: tzinfo = timezone.utc) -> "InMemoryScoreboardRepository":
        type_points = {
            str(project_type["id"]): project_type.get("points")
            for project_type in payload.get("project_types", [])
        }
        try:
            employees = [EmployeeRecord.model_validate(row) for row in payload.get("employees", [])]
            tasks: List[CompletedTaskRecord] = []
            for row in payload.get("projects", []):
                if row.get("status") not in COMPLETED_STATUSES or not row.get("completed_at"):
                    continue
                tasks.append(
                    CompletedTaskRecord(
                        id=row.get("id"),
                        employee_id=str(row["assigned_to"]),
                        completed_at=row["completed_at"],
                        points_override=row.get("points_override"),
                        type_points=type_points.get(str(row.get("type_id"))),
                    )
                )
            targets = [MonthlyTargetRecord.model_validate(row) for row in payload.get("monthly_targets", [])]
            awards = [BadgeAwardRecord.model_validate(row) for row in payload.get("badge_awards", [])]
        except (KeyError, ValidationError) as exc:
            raise DataUnavailableError("Scoreboard fixture is malformed", source="fixture") from exc
        logger.info(
            "Loaded scoreboard fixture employees=%s tasks=%s targets=%s",
            len(employees),
            len(tasks),
            len(targets),
        )
        return cls(employees=employees, tasks=tasks, targets=targets, awards=awards, tz=tz)

    def _roll_up(
        self, tasks: Sequence[CompletedTaskRecord]
    ) -> Tuple[List[MonthlyAggregateRecord], List[YearlyAggregateRecord]]:
        monthly: Dict[Tuple[str, int, int], List[int]] = defaultdict(lambda: [0, 0])
        yearly: Dict[Tuple[str, int], List[int]] = defaultdict(lambda: [0, 0])
        for task in tasks:
            completed_on = local_date(task.completed_at, self.tz)
            month_bucket = monthly[(task.employee_id, completed_on.year, completed_on.month)]
            month_bucket[0] += task.awarded_points
            month_bucket[1] += 1
            year_bucket = yearly[(task.employee_id, completed_on.year)]
            year_bucket[0] += task.awarded_points
            year_bucket[1] += 1
        monthly_rows = [
            MonthlyAggregateRecord(
                employee_id=employee_id, month=month, year=year, total_points=points, task_count=count
            )
            for (employee_id, year, month), (points, count) in monthly.items()
        ]
        yearly_rows = [
            YearlyAggregateRecord(employee_id=employee_id, year=year, total_points=points, task_count=count)
            for (employee_id, year), (points, count) in yearly.items()
        ]
        return monthly_rows, yearly_rows

    def list_employees(self) -> List[EmployeeRecord]:
        return [employee for employee in self._employees if not employee.is_admin]

    def get_employee(self, employee_id: str) -> Optional[EmployeeRecord]:
        return next((employee for employee in self._employees if employee.id == employee_id), None)

    def list_monthly_aggregates(self, years: Sequence[int]) -> List[MonthlyAggregateRecord]:
        wanted = set(years)
        return [row for row in self._monthly if row.year in wanted]

    def list_monthly_aggregates_for_period(self, month: int, year: int) -> List[MonthlyAggregateRecord]:
        return [row for row in self._monthly if row.month == month and row.year == year]

    def list_yearly_aggregates(self, years: Sequence[int]) -> List[YearlyAggregateRecord]:
        wanted = set(years)
        return [row for row in self._yearly if row.year in wanted]

    def list_monthly_targets(self, employee_id: str, years: Sequence[int]) -> List[MonthlyTargetRecord]:
        wanted = set(years)
        return [
            target for target in self._targets if target.employee_id == employee_id and target.year in wanted
        ]

    def list_monthly_targets_for_period(self, month: int, year: int) -> List[MonthlyTargetRecord]:
        return [target for target in self._targets if target.month == month and target.year == year]

    def list_completed_tasks(
        self, employee_id: str, start: datetime, end: datetime
    ) -> List[CompletedTaskRecord]:
        return [task for task in self.list_completed_tasks_for_period(start, end) if task.employee_id == employee_id]

    def list_completed_tasks_for_period(self, start: datetime, end: datetime) -> List[CompletedTaskRecord]:
        start_utc, end_utc = _as_utc(start), _as_utc(end)
        return [task for task in self._tasks if start_utc <= _as_utc(task.completed_at) < end_utc]

    def list_task_completion_years(self, employee_id: str) -> List[int]:
        years = {local_date(task.completed_at, self.tz).year for task in self._tasks if task.employee_id == employee_id}
        return sorted(years, reverse=True)

    def list_badge_awards(self, employee_ids: Sequence[str]) -> List[BadgeAwardRecord]:
        wanted = set(employee_ids)
        with self._awards_lock:
            return [award for award in self._awards.values() if award.employee_id in wanted]

    def upsert_badge_awards(self, awards: Sequence[BadgeAwardRecord]) -> List[BadgeAwardRecord]:
        with self._awards_lock:
            for award in awards:
                self._awards[(award.employee_id, award.badge_index)] = award
        return list(awards)
