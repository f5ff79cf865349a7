from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Sequence, Set, Tuple
from uuid import uuid4

from src.analytics.badge_catalog import BADGE_CATALOG, get_badge, sort_badges
from src.analytics.badges import BadgeContext, evaluate_badges
from src.analytics.periods import badge_years, is_month_complete, month_bounds, previous_month
from src.core.config import Settings, get_settings
from src.core.errors import DataUnavailableError, NotFoundError
from src.models.scoreboard import (
    BadgeAwardRecord,
    CompletedTaskRecord,
    EmployeeRecord,
    MonthlyAggregateRecord,
    MonthlyTargetRecord,
    YearlyAggregateRecord,
)
from src.repositories.scoreboard_repository import ScoreboardReader
from src.schemas.badges import (
    BadgeCatalogItem,
    BadgeRunEmployeeResult,
    BadgeRunResult,
    BadgeView,
    EmployeeBadgesResponse,
)
from src.schemas.scoreboard import EmployeeIdentity
from src.shared.time import resolve_timezone, today_in

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedBadgeData:
    """Cross-employee inputs needed by the relative badges."""

    years: Tuple[int, ...]
    roster: Tuple[EmployeeRecord, ...]
    monthly_aggregates: Tuple[MonthlyAggregateRecord, ...]
    yearly_aggregates: Tuple[YearlyAggregateRecord, ...]
    previous_month_tasks: Tuple[CompletedTaskRecord, ...]
    previous_month_targets: Tuple[MonthlyTargetRecord, ...]


class BadgesService:
    def __init__(self, repository: ScoreboardReader, settings: Optional[Settings] = None) -> None:
        self.repository = repository
        self.settings = settings or get_settings()
        self.tz = resolve_timezone(self.settings.scoreboard_timezone)

    def get_catalog(self) -> List[BadgeCatalogItem]:
        return [
            BadgeCatalogItem(
                index=badge.index,
                key=badge.key,
                name=badge.name,
                description=badge.description,
                icon=badge.icon,
            )
            for badge in BADGE_CATALOG
        ]

    def get_employee_badges(self, employee_id: str, today: Optional[date] = None) -> EmployeeBadgesResponse:
        employee = self._get_ranked_employee(employee_id)
        evaluated_on = today or today_in(self.tz)
        achieved = self.evaluate_employee(employee, evaluated_on)
        badges = [
            BadgeView(
                index=badge.index,
                key=badge.key,
                name=badge.name,
                description=badge.description,
                icon=badge.icon,
                achieved=is_achieved,
            )
            for badge, is_achieved in sort_badges(achieved)
        ]
        return EmployeeBadgesResponse(
            employee=EmployeeIdentity(
                employee_id=employee.id,
                name=employee.name,
                email=employee.email,
                rank=employee.rank,
            ),
            evaluated_on=evaluated_on,
            achieved_count=len(achieved),
            badges=badges,
        )

    def evaluate_employee(self, employee: EmployeeRecord, today: date) -> FrozenSet[int]:
        shared = self.load_shared_data(today)
        return self._evaluate(employee, shared, today)

    def run_badge_job(self, trigger: str = "manual", today: Optional[date] = None) -> BadgeRunResult:
        evaluated_on = today or today_in(self.tz)
        run_id = str(uuid4())
        logger.info("Badge run started run_id=%s trigger=%s evaluated_on=%s", run_id, trigger, evaluated_on)

        shared = self.load_shared_data(evaluated_on)
        employee_ids = [employee.id for employee in shared.roster]
        stored: Dict[str, Set[int]] = {}
        for award in self.repository.list_badge_awards(employee_ids):
            stored.setdefault(award.employee_id, set()).add(award.badge_index)

        awarded_at = datetime.now(timezone.utc)
        new_awards: List[BadgeAwardRecord] = []
        details: List[BadgeRunEmployeeResult] = []
        for employee in shared.roster:
            achieved = self._evaluate(employee, shared, evaluated_on)
            earned = sorted(achieved - stored.get(employee.id, set()))
            if not earned:
                continue
            new_awards.extend(
                BadgeAwardRecord(
                    employee_id=employee.id,
                    badge_index=index,
                    badge_key=get_badge(index).key,
                    awarded_at=awarded_at,
                    run_id=run_id,
                )
                for index in earned
            )
            details.append(
                BadgeRunEmployeeResult(
                    employee_id=employee.id,
                    employee_name=employee.name,
                    badges_earned=[get_badge(index).name for index in earned],
                )
            )
            logger.info("Badge run run_id=%s employee=%s earned=%s", run_id, employee.name, earned)

        # Written once at the end so a failed read never leaves a half-applied run.
        self.repository.upsert_badge_awards(new_awards)
        logger.info(
            "Badge run finished run_id=%s employees=%s new_badges=%s",
            run_id,
            len(shared.roster),
            len(new_awards),
        )
        return BadgeRunResult(
            run_id=run_id,
            trigger=trigger,
            evaluated_on=evaluated_on,
            evaluated_employees=len(shared.roster),
            employees_with_new_badges=len(details),
            total_new_badges=len(new_awards),
            details=details,
        )

    def load_shared_data(self, today: date) -> SharedBadgeData:
        years = badge_years(today, self.settings.badge_epoch_year, self.settings.badge_lookback_years)
        prev_year, prev_month = previous_month(today)
        include_previous_month = is_month_complete(
            prev_month, prev_year, today, self.settings.badge_epoch_year
        )

        with ThreadPoolExecutor(max_workers=self.settings.badge_fetch_workers) as executor:
            roster_future = executor.submit(self.repository.list_employees)
            monthly_future = executor.submit(self.repository.list_monthly_aggregates, years)
            yearly_future = executor.submit(self.repository.list_yearly_aggregates, years)
            tasks_future: Optional[Future] = None
            targets_future: Optional[Future] = None
            if include_previous_month:
                start, end = month_bounds(prev_month, prev_year, self.tz)
                tasks_future = executor.submit(self.repository.list_completed_tasks_for_period, start, end)
                targets_future = executor.submit(
                    self.repository.list_monthly_targets_for_period, prev_month, prev_year
                )

            # result() re-raises provider failures so no partial snapshot is evaluated.
            shared = SharedBadgeData(
                years=tuple(years),
                roster=tuple(roster_future.result()),
                monthly_aggregates=tuple(monthly_future.result()),
                yearly_aggregates=tuple(yearly_future.result()),
                previous_month_tasks=tuple(tasks_future.result()) if tasks_future else (),
                previous_month_targets=tuple(targets_future.result()) if targets_future else (),
            )

        if not shared.roster:
            raise DataUnavailableError("Employee roster is empty", source="employees")
        return shared

    def build_context(self, employee: EmployeeRecord, shared: SharedBadgeData, today: date) -> BadgeContext:
        targets, tasks = self._load_employee_data(employee.id, shared.years, today)
        return BadgeContext(
            employee_id=employee.id,
            today=today,
            epoch_year=self.settings.badge_epoch_year,
            employees=shared.roster,
            monthly_aggregates=shared.monthly_aggregates,
            yearly_aggregates=shared.yearly_aggregates,
            monthly_targets=tuple(targets),
            completed_tasks=tuple(tasks),
            previous_month_tasks=shared.previous_month_tasks,
            previous_month_targets=shared.previous_month_targets,
            tz=self.tz,
        )

    def _evaluate(self, employee: EmployeeRecord, shared: SharedBadgeData, today: date) -> FrozenSet[int]:
        if all(member.id != employee.id for member in shared.roster):
            raise DataUnavailableError(f"Employee {employee.id} missing from roster", source="employees")
        if not shared.years:
            return frozenset()
        achieved = evaluate_badges(self.build_context(employee, shared, today))
        logger.debug("Evaluated badges employee_id=%s achieved=%s", employee.id, sorted(achieved))
        return achieved

    def _load_employee_data(
        self, employee_id: str, years: Sequence[int], today: date
    ) -> Tuple[List[MonthlyTargetRecord], List[CompletedTaskRecord]]:
        first_year = min(years)
        start = datetime(first_year, 1, 1, tzinfo=self.tz)
        # Only complete months matter, so the task window stops where the current month begins.
        end, _ = month_bounds(today.month, today.year, self.tz)
        with ThreadPoolExecutor(max_workers=min(2, self.settings.badge_fetch_workers)) as executor:
            targets_future = executor.submit(self.repository.list_monthly_targets, employee_id, list(years))
            tasks_future = executor.submit(self.repository.list_completed_tasks, employee_id, start, end)
            return targets_future.result(), tasks_future.result()

    def _get_ranked_employee(self, employee_id: str) -> EmployeeRecord:
        employee = self.repository.get_employee(employee_id)
        if employee is None or employee.is_admin:
            raise NotFoundError(f"Employee {employee_id} not found")
        return employee
