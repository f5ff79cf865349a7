"""Badge evaluation over a read-only scoreboard snapshot.

Every badge is an independent predicate over complete periods only. The
evaluator never reads from a data store: callers build a ``BadgeContext`` with
everything the rules need and get back the set of achieved badge indices.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from src.analytics import badge_catalog as catalog
from src.analytics.periods import (
    MonthKey,
    has_consecutive_run,
    is_month_complete,
    is_year_complete,
    month_midpoint_day,
    previous_month,
)
from src.analytics.rankings import build_tie_break, rank_all_months, rank_all_years
from src.models.scoreboard import (
    CompletedTaskRecord,
    EmployeeRecord,
    MonthlyAggregateRecord,
    MonthlyTargetRecord,
    YearlyAggregateRecord,
)
from src.shared.time import local_date

TRIPLE_CROWN_MONTHS = 3
CONSISTENCY_MONTHS = 4
CONSISTENCY_MAX_RANK = 5
DOMINATOR_MONTHS = 3
BEAST_MODE_MULTIPLIER = 2
HALL_OF_FAME_MAX_RANK = 5
IMMORTAL_MAX_RANK = 10
FULL_YEAR_MONTHS = 12
DYNASTY_YEARS = 2
JUGGERNAUT_MONTHS = 3


@dataclass(frozen=True)
class BadgeContext:
    employee_id: str
    today: date
    epoch_year: int
    employees: Tuple[EmployeeRecord, ...]
    monthly_aggregates: Tuple[MonthlyAggregateRecord, ...]
    yearly_aggregates: Tuple[YearlyAggregateRecord, ...]
    monthly_targets: Tuple[MonthlyTargetRecord, ...] = ()
    completed_tasks: Tuple[CompletedTaskRecord, ...] = ()
    previous_month_tasks: Tuple[CompletedTaskRecord, ...] = ()
    previous_month_targets: Tuple[MonthlyTargetRecord, ...] = ()
    tz: tzinfo = timezone.utc


@dataclass
class _BadgeInputs:
    """Working sets derived once per evaluation and discarded afterwards."""

    context: BadgeContext
    monthly_ranks: Dict[MonthKey, Dict[str, int]] = field(default_factory=dict)
    yearly_ranks: Dict[int, Dict[str, int]] = field(default_factory=dict)
    complete_monthly: List[MonthlyAggregateRecord] = field(default_factory=list)
    complete_yearly: List[YearlyAggregateRecord] = field(default_factory=list)
    employee_monthly: Dict[MonthKey, MonthlyAggregateRecord] = field(default_factory=dict)
    employee_targets: Dict[MonthKey, int] = field(default_factory=dict)
    employee_tasks_by_month: Dict[MonthKey, List[CompletedTaskRecord]] = field(default_factory=dict)

    @property
    def employee_id(self) -> str:
        return self.context.employee_id

    def month_rank(self, period: MonthKey) -> Optional[int]:
        return self.monthly_ranks.get(period, {}).get(self.employee_id)

    def ranked_months(self) -> List[Tuple[MonthKey, int]]:
        ranked: List[Tuple[MonthKey, int]] = []
        for period in self.employee_monthly:
            rank = self.month_rank(period)
            if rank is not None:
                ranked.append((period, rank))
        return ranked


def crossing_timestamp(tasks: Iterable[CompletedTaskRecord], target_points: int) -> Optional[datetime]:
    """Completion time of the task that first lifts the running total to the target."""
    running_total = 0
    for task in sorted(tasks, key=lambda item: item.completed_at):
        running_total += task.awarded_points
        if running_total >= target_points:
            return task.completed_at
    return None


def _month_key(task: CompletedTaskRecord, tz: tzinfo) -> MonthKey:
    completed_on = local_date(task.completed_at, tz)
    return completed_on.year, completed_on.month


def _group_tasks_by_month(
    tasks: Iterable[CompletedTaskRecord], tz: tzinfo
) -> Dict[MonthKey, List[CompletedTaskRecord]]:
    grouped: Dict[MonthKey, List[CompletedTaskRecord]] = defaultdict(list)
    for task in tasks:
        grouped[_month_key(task, tz)].append(task)
    for period_tasks in grouped.values():
        period_tasks.sort(key=lambda item: item.completed_at)
    return dict(grouped)


def _defined_targets(targets: Iterable[MonthlyTargetRecord], employee_id: str) -> Dict[MonthKey, int]:
    return {
        (target.year, target.month): target.target_points
        for target in targets
        if target.employee_id == employee_id and target.target_points > 0
    }


def _build_inputs(context: BadgeContext) -> _BadgeInputs:
    roster = {employee.id for employee in context.employees}
    tie_break = build_tie_break(context.employees)
    today = context.today
    epoch = context.epoch_year

    complete_monthly = [
        row
        for row in context.monthly_aggregates
        if row.employee_id in roster and is_month_complete(row.month, row.year, today, epoch)
    ]
    complete_yearly = [
        row
        for row in context.yearly_aggregates
        if row.employee_id in roster and is_year_complete(row.year, today, epoch)
    ]
    employee_tasks = [
        task for task in context.completed_tasks if task.employee_id == context.employee_id
    ]

    return _BadgeInputs(
        context=context,
        monthly_ranks=rank_all_months(complete_monthly, tie_break),
        yearly_ranks=rank_all_years(complete_yearly, tie_break),
        complete_monthly=complete_monthly,
        complete_yearly=complete_yearly,
        employee_monthly={
            (row.year, row.month): row
            for row in complete_monthly
            if row.employee_id == context.employee_id
        },
        employee_targets={
            period: points
            for period, points in _defined_targets(context.monthly_targets, context.employee_id).items()
            if is_month_complete(period[1], period[0], today, epoch)
        },
        employee_tasks_by_month=_group_tasks_by_month(employee_tasks, context.tz),
    )


def _triple_crown_champion(inputs: _BadgeInputs) -> bool:
    first_place = [period for period, rank in inputs.ranked_months() if rank == 1]
    return has_consecutive_run(first_place, TRIPLE_CROWN_MONTHS)


def _lightning_finisher(inputs: _BadgeInputs) -> bool:
    context = inputs.context
    year, month = previous_month(context.today)
    if not is_month_complete(month, year, context.today, context.epoch_year):
        return False

    roster = {employee.id for employee in context.employees}
    period_targets: Dict[str, int] = {
        target.employee_id: target.target_points
        for target in context.previous_month_targets
        if target.month == month and target.year == year and target.target_points > 0
    }
    own_target = inputs.employee_targets.get((year, month))
    if own_target is not None:
        period_targets[inputs.employee_id] = own_target
    if inputs.employee_id not in period_targets:
        return False

    period_tasks: Dict[str, List[CompletedTaskRecord]] = defaultdict(list)
    for task in context.previous_month_tasks:
        if task.employee_id == inputs.employee_id or task.employee_id not in roster:
            continue
        if _month_key(task, context.tz) == (year, month):
            period_tasks[task.employee_id].append(task)
    period_tasks[inputs.employee_id] = inputs.employee_tasks_by_month.get((year, month), [])

    crossings: Dict[str, datetime] = {}
    for employee_id, target_points in period_targets.items():
        if employee_id not in roster:
            continue
        crossed_at = crossing_timestamp(period_tasks.get(employee_id, []), target_points)
        if crossed_at is not None:
            crossings[employee_id] = crossed_at

    own_crossing = crossings.get(inputs.employee_id)
    if own_crossing is None:
        return False
    return all(own_crossing <= crossed_at for crossed_at in crossings.values())


def _annual_legend_years(inputs: _BadgeInputs) -> List[int]:
    totals_by_year: Dict[int, Dict[str, int]] = defaultdict(dict)
    for row in inputs.complete_yearly:
        totals_by_year[row.year][row.employee_id] = row.total_points

    legend_years: List[int] = []
    for year, totals in sorted(totals_by_year.items()):
        own_total = totals.get(inputs.employee_id)
        if own_total is None or own_total <= 0:
            continue
        others = [total for employee_id, total in totals.items() if employee_id != inputs.employee_id]
        if all(own_total > total for total in others):
            legend_years.append(year)
    return legend_years


def _annual_legend(inputs: _BadgeInputs) -> bool:
    return len(_annual_legend_years(inputs)) >= 1


def _consistency_king(inputs: _BadgeInputs) -> bool:
    top_five = [period for period, rank in inputs.ranked_months() if rank <= CONSISTENCY_MAX_RANK]
    return has_consecutive_run(top_five, CONSISTENCY_MONTHS)


def _the_unstoppable(inputs: _BadgeInputs) -> bool:
    tz = inputs.context.tz
    for (year, month), target_points in inputs.employee_targets.items():
        crossed_at = crossing_timestamp(inputs.employee_tasks_by_month.get((year, month), []), target_points)
        if crossed_at is None:
            continue
        if local_date(crossed_at, tz).day <= month_midpoint_day(month, year):
            return True
    return False


def _dominator(inputs: _BadgeInputs) -> bool:
    first_place = {period for period, rank in inputs.ranked_months() if rank == 1}
    return len(first_place) >= DOMINATOR_MONTHS


def _beast_mode(inputs: _BadgeInputs) -> bool:
    for period, target_points in inputs.employee_targets.items():
        aggregate = inputs.employee_monthly.get(period)
        if aggregate and aggregate.total_points >= BEAST_MODE_MULTIPLIER * target_points:
            return True
    return False


def _the_record_breaker(inputs: _BadgeInputs) -> bool:
    if not inputs.employee_monthly or not inputs.complete_monthly:
        return False
    record = max(row.total_points for row in inputs.complete_monthly)
    personal_best = max(row.total_points for row in inputs.employee_monthly.values())
    return record > 0 and personal_best == record


def _full_year_ranks(inputs: _BadgeInputs) -> Dict[int, List[int]]:
    ranks_by_year: Dict[int, List[int]] = defaultdict(list)
    for (year, _month), rank in inputs.ranked_months():
        if is_year_complete(year, inputs.context.today, inputs.context.epoch_year):
            ranks_by_year[year].append(rank)
    return ranks_by_year


def _hall_of_fame(inputs: _BadgeInputs) -> bool:
    return any(
        len(ranks) == FULL_YEAR_MONTHS and all(rank <= HALL_OF_FAME_MAX_RANK for rank in ranks)
        for ranks in _full_year_ranks(inputs).values()
    )


def _the_immortal(inputs: _BadgeInputs) -> bool:
    return any(
        len(ranks) >= FULL_YEAR_MONTHS and all(rank <= IMMORTAL_MAX_RANK for rank in ranks)
        for ranks in _full_year_ranks(inputs).values()
    )


def _dynasty_builder(inputs: _BadgeInputs) -> bool:
    return len(_annual_legend_years(inputs)) >= DYNASTY_YEARS


def _the_juggernaut(inputs: _BadgeInputs) -> bool:
    target_met: List[MonthKey] = []
    for period, target_points in inputs.employee_targets.items():
        aggregate = inputs.employee_monthly.get(period)
        if aggregate and aggregate.total_points >= target_points:
            target_met.append(period)
    return has_consecutive_run(target_met, JUGGERNAUT_MONTHS)


BADGE_RULES: Dict[int, Callable[[_BadgeInputs], bool]] = {
    catalog.TRIPLE_CROWN_CHAMPION: _triple_crown_champion,
    catalog.LIGHTNING_FINISHER: _lightning_finisher,
    catalog.ANNUAL_LEGEND: _annual_legend,
    catalog.CONSISTENCY_KING: _consistency_king,
    catalog.THE_UNSTOPPABLE: _the_unstoppable,
    catalog.DOMINATOR: _dominator,
    catalog.BEAST_MODE: _beast_mode,
    catalog.THE_RECORD_BREAKER: _the_record_breaker,
    catalog.HALL_OF_FAME: _hall_of_fame,
    catalog.THE_IMMORTAL: _the_immortal,
    catalog.DYNASTY_BUILDER: _dynasty_builder,
    catalog.THE_JUGGERNAUT: _the_juggernaut,
}


def evaluate_badges(context: BadgeContext, only: Optional[Sequence[int]] = None) -> FrozenSet[int]:
    inputs = _build_inputs(context)
    indices = only if only is not None else sorted(BADGE_RULES)
    achieved: Set[int] = {index for index in indices if BADGE_RULES[index](inputs)}
    return frozenset(achieved)
