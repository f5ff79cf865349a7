from __future__ import annotations

from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from src.analytics.periods import is_month_complete, is_year_complete, previous_month
from src.analytics.rankings import build_tie_break, rank_monthly, rank_yearly, sort_aggregates
from src.core.config import Settings, get_settings
from src.core.errors import NotFoundError
from src.models.scoreboard import EmployeeRecord, MonthlyAggregateRecord, YearlyAggregateRecord
from src.repositories.scoreboard_repository import ScoreboardReader
from src.schemas.scoreboard import (
    EmployeeIdentity,
    EmployeeSummaryResponse,
    LeaderboardResponse,
    LeaderboardRow,
    MonthlyLeaderboardFilters,
    TargetProgress,
    YearlyLeaderboardFilters,
)
from src.shared.response import Pagination, paginate_list
from src.shared.time import resolve_timezone, today_in


class ScoreboardService:
    def __init__(self, repository: ScoreboardReader, settings: Optional[Settings] = None) -> None:
        self.repository = repository
        self.settings = settings or get_settings()
        self.tz = resolve_timezone(self.settings.scoreboard_timezone)

    def get_monthly_leaderboard(
        self, filters: MonthlyLeaderboardFilters, today: Optional[date] = None
    ) -> Tuple[LeaderboardResponse, Pagination]:
        today = today or today_in(self.tz)
        month = filters.month or today.month
        year = filters.year or today.year
        response = self._build_monthly_leaderboard(month, year, today)
        rankings, pagination = paginate_list(response.rankings, filters.page, filters.page_size)
        return response.model_copy(update={"rankings": rankings}), pagination

    def get_yearly_leaderboard(
        self, filters: YearlyLeaderboardFilters, today: Optional[date] = None
    ) -> Tuple[LeaderboardResponse, Pagination]:
        today = today or today_in(self.tz)
        year = filters.year or today.year
        roster = self.repository.list_employees()
        aggregates = self._roster_rows(self.repository.list_yearly_aggregates([year]), roster)
        rows = self._to_leaderboard_rows(
            [row for row in aggregates if row.year == year], roster
        )
        response = LeaderboardResponse(
            period_type="yearly",
            month=None,
            year=year,
            is_complete=is_year_complete(year, today, self.settings.badge_epoch_year),
            rankings=rows,
        )
        rankings, pagination = paginate_list(response.rankings, filters.page, filters.page_size)
        return response.model_copy(update={"rankings": rankings}), pagination

    def get_last_month_podium(self, limit: int = 3, today: Optional[date] = None) -> LeaderboardResponse:
        today = today or today_in(self.tz)
        year, month = previous_month(today)
        response = self._build_monthly_leaderboard(month, year, today)
        return response.model_copy(update={"rankings": response.rankings[:limit]})

    def get_employee_summary(self, employee_id: str, today: Optional[date] = None) -> EmployeeSummaryResponse:
        employee = self.repository.get_employee(employee_id)
        if employee is None or employee.is_admin:
            raise NotFoundError(f"Employee {employee_id} not found")
        today = today or today_in(self.tz)
        roster = self.repository.list_employees()
        tie_break = build_tie_break(roster)

        monthly_rows = self._roster_rows(
            self.repository.list_monthly_aggregates_for_period(today.month, today.year), roster
        )
        monthly_ranks = rank_monthly(monthly_rows, today.month, today.year, tie_break)
        own_month = next((row for row in monthly_rows if row.employee_id == employee.id), None)

        completion_years = self.repository.list_task_completion_years(employee.id)
        history_years = sorted(set(completion_years) | {today.year}, reverse=True)
        yearly_rows = self._roster_rows(self.repository.list_yearly_aggregates(history_years), roster)
        yearly_ranks = rank_yearly(yearly_rows, today.year, tie_break)
        own_years = [row for row in yearly_rows if row.employee_id == employee.id]
        own_current_year = next((row for row in own_years if row.year == today.year), None)

        targets = self.repository.list_monthly_targets(employee.id, [today.year])
        current_target = next(
            (target for target in targets if target.month == today.month and target.year == today.year),
            None,
        )
        month_points = own_month.total_points if own_month else 0
        target_progress = self._build_target_progress(
            month=today.month,
            year=today.year,
            obtained_points=month_points,
            target_points=current_target.target_points if current_target else None,
        )

        return EmployeeSummaryResponse(
            employee=EmployeeIdentity(
                employee_id=employee.id,
                name=employee.name,
                email=employee.email,
                rank=employee.rank,
            ),
            current_month_points=month_points,
            current_month_task_count=own_month.task_count if own_month else 0,
            current_month_rank=monthly_ranks.get(employee.id),
            current_year_points=own_current_year.total_points if own_current_year else 0,
            current_year_task_count=own_current_year.task_count if own_current_year else 0,
            current_year_rank=yearly_ranks.get(employee.id),
            all_time_points=sum(row.total_points for row in own_years),
            target_progress=target_progress,
            available_years=completion_years or [today.year],
        )

    def _build_monthly_leaderboard(self, month: int, year: int, today: date) -> LeaderboardResponse:
        roster = self.repository.list_employees()
        aggregates = self._roster_rows(
            self.repository.list_monthly_aggregates_for_period(month, year), roster
        )
        rows = self._to_leaderboard_rows(
            [row for row in aggregates if row.month == month and row.year == year], roster
        )
        return LeaderboardResponse(
            period_type="monthly",
            month=month,
            year=year,
            is_complete=is_month_complete(month, year, today, self.settings.badge_epoch_year),
            rankings=rows,
        )

    def _build_target_progress(
        self, month: int, year: int, obtained_points: int, target_points: Optional[int]
    ) -> TargetProgress:
        is_default = target_points is None
        target = self.settings.default_monthly_target if target_points is None else target_points
        completed_pct = min(100, int(obtained_points * 100 / target + 0.5)) if target > 0 else 0
        return TargetProgress(
            month=month,
            year=year,
            target_points=target,
            obtained_points=obtained_points,
            completed_pct=completed_pct,
            remaining_points=max(0, target - obtained_points),
            is_achieved=obtained_points >= target,
            is_default_target=is_default,
        )

    @staticmethod
    def _roster_rows(rows: Sequence, roster: Sequence[EmployeeRecord]) -> List:
        roster_ids = {employee.id for employee in roster}
        return [row for row in rows if row.employee_id in roster_ids]

    @staticmethod
    def _to_leaderboard_rows(
        aggregates: Sequence[MonthlyAggregateRecord] | Sequence[YearlyAggregateRecord],
        roster: Sequence[EmployeeRecord],
    ) -> List[LeaderboardRow]:
        names: Dict[str, str] = {employee.id: employee.name for employee in roster}
        ordered = sort_aggregates(list(aggregates), build_tie_break(roster))
        return [
            LeaderboardRow(
                rank=index,
                employee_id=row.employee_id,
                employee_name=names.get(row.employee_id, ""),
                total_points=row.total_points,
                task_count=row.task_count,
            )
            for index, row in enumerate(ordered, start=1)
        ]
