from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, List, Sequence
from zoneinfo import ZoneInfo

from src.analytics import badge_catalog as catalog
from src.analytics.badges import BadgeContext, crossing_timestamp, evaluate_badges
from src.models.scoreboard import (
    CompletedTaskRecord,
    EmployeeRecord,
    MonthlyAggregateRecord,
    MonthlyTargetRecord,
    YearlyAggregateRecord,
)

UTC = timezone.utc


def _employees(*employee_ids: str) -> List[EmployeeRecord]:
    return [
        EmployeeRecord(id=employee_id, name=employee_id.title(), created_at=datetime(2025, 1, day + 1, tzinfo=UTC))
        for day, employee_id in enumerate(employee_ids)
    ]


EMPLOYEES = _employees("ava", "ben", "cleo")


def _monthly(employee_id: str, year: int, month: int, points: int) -> MonthlyAggregateRecord:
    return MonthlyAggregateRecord(employee_id=employee_id, month=month, year=year, total_points=points, task_count=1)


def _yearly(employee_id: str, year: int, points: int) -> YearlyAggregateRecord:
    return YearlyAggregateRecord(employee_id=employee_id, year=year, total_points=points, task_count=1)


def _target(employee_id: str, year: int, month: int, points: int) -> MonthlyTargetRecord:
    return MonthlyTargetRecord(employee_id=employee_id, month=month, year=year, target_points=points)


def _task(employee_id: str, completed_at: datetime, points: int) -> CompletedTaskRecord:
    return CompletedTaskRecord(employee_id=employee_id, completed_at=completed_at, type_points=points)


def _context(
    employee_id: str,
    today: date,
    monthly: Iterable[MonthlyAggregateRecord] = (),
    yearly: Iterable[YearlyAggregateRecord] = (),
    targets: Iterable[MonthlyTargetRecord] = (),
    tasks: Iterable[CompletedTaskRecord] = (),
    previous_month_tasks: Iterable[CompletedTaskRecord] = (),
    previous_month_targets: Iterable[MonthlyTargetRecord] = (),
    employees: Sequence[EmployeeRecord] = EMPLOYEES,
    tz=UTC,
) -> BadgeContext:
    return BadgeContext(
        employee_id=employee_id,
        today=today,
        epoch_year=2026,
        employees=tuple(employees),
        monthly_aggregates=tuple(monthly),
        yearly_aggregates=tuple(yearly),
        monthly_targets=tuple(target for target in targets if target.employee_id == employee_id),
        completed_tasks=tuple(task for task in tasks if task.employee_id == employee_id),
        previous_month_tasks=tuple(previous_month_tasks),
        previous_month_targets=tuple(previous_month_targets),
        tz=tz,
    )


def _first_place_months(*periods) -> List[MonthlyAggregateRecord]:
    rows: List[MonthlyAggregateRecord] = []
    for year, month in periods:
        rows.append(_monthly("ava", year, month, 150))
        rows.append(_monthly("ben", year, month, 90))
    return rows


def test_triple_crown_for_three_consecutive_first_places():
    monthly = _first_place_months((2026, 1), (2026, 2), (2026, 3))
    achieved = evaluate_badges(_context("ava", date(2026, 4, 15), monthly=monthly))
    assert catalog.TRIPLE_CROWN_CHAMPION in achieved
    assert catalog.DOMINATOR in achieved
    assert catalog.TRIPLE_CROWN_CHAMPION not in evaluate_badges(
        _context("ben", date(2026, 4, 15), monthly=monthly)
    )


def test_current_month_never_counts():
    monthly = _first_place_months((2026, 2), (2026, 3), (2026, 4))
    achieved = evaluate_badges(_context("ava", date(2026, 4, 30), monthly=monthly))
    assert catalog.TRIPLE_CROWN_CHAMPION not in achieved
    assert catalog.DOMINATOR not in achieved


def test_non_consecutive_first_places_only_earn_dominator():
    monthly = _first_place_months((2026, 1), (2026, 3), (2026, 4))
    achieved = evaluate_badges(_context("ava", date(2026, 5, 2), monthly=monthly))
    assert catalog.TRIPLE_CROWN_CHAMPION not in achieved
    assert catalog.DOMINATOR in achieved


def test_months_before_epoch_are_ignored():
    monthly = _first_place_months((2025, 11), (2025, 12), (2026, 1))
    achieved = evaluate_badges(_context("ava", date(2026, 3, 1), monthly=monthly))
    assert catalog.TRIPLE_CROWN_CHAMPION not in achieved
    assert catalog.DOMINATOR not in achieved


def test_triple_crown_across_year_boundary():
    monthly = _first_place_months((2026, 11), (2026, 12), (2027, 1))
    achieved = evaluate_badges(_context("ava", date(2027, 2, 1), monthly=monthly))
    assert catalog.TRIPLE_CROWN_CHAMPION in achieved


def test_beast_mode_needs_double_the_defined_target():
    monthly = [_monthly("ava", 2026, 2, 220), _monthly("ben", 2026, 2, 100)]
    targets = [_target("ava", 2026, 2, 100), _target("ben", 2026, 2, 100)]
    today = date(2026, 3, 1)
    assert catalog.BEAST_MODE in evaluate_badges(_context("ava", today, monthly=monthly, targets=targets))
    assert catalog.BEAST_MODE not in evaluate_badges(_context("ben", today, monthly=monthly, targets=targets))


def test_beast_mode_ignores_zero_targets():
    monthly = [_monthly("ava", 2026, 2, 220)]
    targets = [_target("ava", 2026, 2, 0)]
    achieved = evaluate_badges(_context("ava", date(2026, 3, 1), monthly=monthly, targets=targets))
    assert catalog.BEAST_MODE not in achieved


def test_annual_legend_for_strictly_highest_complete_year():
    yearly = [_yearly("ava", 2026, 500), _yearly("ben", 2026, 400), _yearly("ben", 2027, 900)]
    today = date(2027, 2, 1)
    assert catalog.ANNUAL_LEGEND in evaluate_badges(_context("ava", today, yearly=yearly))
    # 2027 is still running.
    assert catalog.ANNUAL_LEGEND not in evaluate_badges(_context("ben", today, yearly=yearly))


def test_annual_legend_tie_goes_to_nobody():
    yearly = [_yearly("ava", 2026, 500), _yearly("ben", 2026, 500)]
    today = date(2027, 2, 1)
    assert catalog.ANNUAL_LEGEND not in evaluate_badges(_context("ava", today, yearly=yearly))
    assert catalog.ANNUAL_LEGEND not in evaluate_badges(_context("ben", today, yearly=yearly))


def test_dynasty_builder_needs_two_legend_years():
    yearly = [
        _yearly("ava", 2026, 500),
        _yearly("ben", 2026, 100),
        _yearly("ava", 2027, 700),
        _yearly("ben", 2027, 300),
    ]
    achieved = evaluate_badges(_context("ava", date(2028, 1, 10), yearly=yearly))
    assert catalog.ANNUAL_LEGEND in achieved
    assert catalog.DYNASTY_BUILDER in achieved
    one_year = evaluate_badges(_context("ava", date(2027, 6, 1), yearly=yearly))
    assert catalog.ANNUAL_LEGEND in one_year
    assert catalog.DYNASTY_BUILDER not in one_year


def test_consistency_king_for_four_months_in_top_five():
    monthly = []
    for month in range(1, 5):
        monthly.append(_monthly("ben", 2026, month, 300))
        monthly.append(_monthly("ava", 2026, month, 200))
    achieved = evaluate_badges(_context("ava", date(2026, 5, 3), monthly=monthly))
    assert catalog.CONSISTENCY_KING in achieved
    assert catalog.TRIPLE_CROWN_CHAMPION not in achieved
    assert catalog.CONSISTENCY_KING not in evaluate_badges(
        _context("ava", date(2026, 4, 3), monthly=monthly)
    )


def test_unstoppable_when_target_crossed_by_midpoint():
    targets = [_target("ava", 2026, 2, 100)]
    tasks = [
        _task("ava", datetime(2026, 2, 3, 9, tzinfo=UTC), 60),
        _task("ava", datetime(2026, 2, 14, 23, tzinfo=UTC), 50),
    ]
    achieved = evaluate_badges(_context("ava", date(2026, 3, 10), targets=targets, tasks=tasks))
    assert catalog.THE_UNSTOPPABLE in achieved


def test_unstoppable_uses_local_day_of_crossing():
    targets = [_target("ava", 2026, 2, 100)]
    tasks = [
        _task("ava", datetime(2026, 2, 3, 9, tzinfo=UTC), 60),
        _task("ava", datetime(2026, 2, 14, 23, 30, tzinfo=UTC), 50),
    ]
    context = _context("ava", date(2026, 3, 10), targets=targets, tasks=tasks, tz=ZoneInfo("Asia/Tokyo"))
    assert catalog.THE_UNSTOPPABLE not in evaluate_badges(context)


def test_unstoppable_not_awarded_without_target():
    tasks = [_task("ava", datetime(2026, 2, 3, 9, tzinfo=UTC), 500)]
    achieved = evaluate_badges(_context("ava", date(2026, 3, 10), tasks=tasks))
    assert catalog.THE_UNSTOPPABLE not in achieved


def test_record_breaker_holds_highest_single_month():
    monthly = [
        _monthly("ava", 2026, 1, 300),
        _monthly("ben", 2026, 2, 250),
        _monthly("ben", 2026, 3, 10),
    ]
    today = date(2026, 4, 1)
    assert catalog.THE_RECORD_BREAKER in evaluate_badges(_context("ava", today, monthly=monthly))
    assert catalog.THE_RECORD_BREAKER not in evaluate_badges(_context("ben", today, monthly=monthly))


def test_record_breaker_ignores_all_zero_history():
    monthly = [_monthly("ava", 2026, 1, 0), _monthly("ben", 2026, 1, 0)]
    achieved = evaluate_badges(_context("ava", date(2026, 4, 1), monthly=monthly))
    assert catalog.THE_RECORD_BREAKER not in achieved


def _full_year(ava_rank_seven_in: Sequence[int] = (), skip_months: Sequence[int] = ()):
    employees = _employees("ava", "ben", "e1", "e2", "e3", "e4", "e5", "e6")
    monthly: List[MonthlyAggregateRecord] = []
    for month in range(1, 13):
        if month in skip_months:
            continue
        monthly.append(_monthly("ben", 2026, month, 300))
        monthly.append(_monthly("ava", 2026, month, 200))
        if month in ava_rank_seven_in:
            for other in ("e1", "e2", "e3", "e4", "e5"):
                monthly.append(_monthly(other, 2026, month, 250))
    return employees, monthly


def test_hall_of_fame_and_immortal_for_full_year_in_top_five():
    employees, monthly = _full_year()
    achieved = evaluate_badges(_context("ava", date(2027, 1, 5), monthly=monthly, employees=employees))
    assert catalog.HALL_OF_FAME in achieved
    assert catalog.THE_IMMORTAL in achieved


def test_immortal_only_when_a_month_falls_outside_top_five():
    employees, monthly = _full_year(ava_rank_seven_in=(6,))
    achieved = evaluate_badges(_context("ava", date(2027, 1, 5), monthly=monthly, employees=employees))
    assert catalog.HALL_OF_FAME not in achieved
    assert catalog.THE_IMMORTAL in achieved


def test_full_year_badges_need_every_month_and_a_finished_year():
    employees, monthly = _full_year(skip_months=(7,))
    achieved = evaluate_badges(_context("ava", date(2027, 1, 5), monthly=monthly, employees=employees))
    assert catalog.HALL_OF_FAME not in achieved
    assert catalog.THE_IMMORTAL not in achieved

    employees, monthly = _full_year()
    still_running = evaluate_badges(_context("ava", date(2026, 12, 31), monthly=monthly, employees=employees))
    assert catalog.THE_IMMORTAL not in still_running


def test_juggernaut_needs_three_consecutive_targets_met():
    targets = [_target("ava", 2026, month, 100) for month in (1, 2, 3)]
    monthly = [_monthly("ava", 2026, 1, 100), _monthly("ava", 2026, 2, 140), _monthly("ava", 2026, 3, 120)]
    today = date(2026, 4, 2)
    assert catalog.THE_JUGGERNAUT in evaluate_badges(_context("ava", today, monthly=monthly, targets=targets))

    short_month = [_monthly("ava", 2026, 1, 100), _monthly("ava", 2026, 2, 90), _monthly("ava", 2026, 3, 120)]
    assert catalog.THE_JUGGERNAUT not in evaluate_badges(
        _context("ava", today, monthly=short_month, targets=targets)
    )


def _lightning_month():
    targets = [_target("ava", 2026, 2, 100), _target("ben", 2026, 2, 100)]
    tasks = [
        _task("ava", datetime(2026, 2, 10, 9, tzinfo=UTC), 60),
        _task("ava", datetime(2026, 2, 12, 9, tzinfo=UTC), 50),
        _task("ben", datetime(2026, 2, 20, 9, tzinfo=UTC), 120),
        # Cleo crosses first but has no target.
        _task("cleo", datetime(2026, 2, 2, 9, tzinfo=UTC), 500),
    ]
    return targets, tasks


def test_lightning_finisher_goes_to_first_crossing_last_month():
    targets, tasks = _lightning_month()
    today = date(2026, 3, 5)
    for employee_id, expected in (("ava", True), ("ben", False), ("cleo", False)):
        context = _context(
            employee_id,
            today,
            targets=targets,
            tasks=tasks,
            previous_month_tasks=tasks,
            previous_month_targets=targets,
        )
        assert (catalog.LIGHTNING_FINISHER in evaluate_badges(context)) is expected


def test_lightning_finisher_only_looks_at_previous_month():
    targets, tasks = _lightning_month()
    context = _context(
        "ava",
        date(2026, 4, 5),
        targets=targets,
        tasks=tasks,
        previous_month_tasks=(),
        previous_month_targets=(),
    )
    assert catalog.LIGHTNING_FINISHER not in evaluate_badges(context)


def test_lightning_finisher_shared_on_equal_crossing_time():
    targets = [_target("ava", 2026, 2, 100), _target("ben", 2026, 2, 100)]
    crossed_at = datetime(2026, 2, 10, 9, tzinfo=UTC)
    tasks = [_task("ava", crossed_at, 100), _task("ben", crossed_at, 100)]
    for employee_id in ("ava", "ben"):
        context = _context(
            employee_id,
            date(2026, 3, 1),
            targets=targets,
            tasks=tasks,
            previous_month_tasks=tasks,
            previous_month_targets=targets,
        )
        assert catalog.LIGHTNING_FINISHER in evaluate_badges(context)


def test_crossing_timestamp():
    tasks = [
        _task("ava", datetime(2026, 2, 12, tzinfo=UTC), 50),
        _task("ava", datetime(2026, 2, 10, tzinfo=UTC), 60),
    ]
    assert crossing_timestamp(tasks, 100) == datetime(2026, 2, 12, tzinfo=UTC)
    assert crossing_timestamp(tasks, 60) == datetime(2026, 2, 10, tzinfo=UTC)
    assert crossing_timestamp(tasks, 500) is None
    assert crossing_timestamp([], 10) is None


def test_points_override_wins_over_type_points():
    task = CompletedTaskRecord(
        employee_id="ava", completed_at=datetime(2026, 2, 1, tzinfo=UTC), points_override=0, type_points=40
    )
    assert task.awarded_points == 0
    assert CompletedTaskRecord(employee_id="ava", completed_at=datetime(2026, 2, 1, tzinfo=UTC)).awarded_points == 0


def test_employee_without_history_earns_nothing():
    monthly = _first_place_months((2026, 1), (2026, 2), (2026, 3))
    assert evaluate_badges(_context("cleo", date(2026, 6, 1), monthly=monthly)) == frozenset()


def test_evaluation_is_repeatable_and_can_be_limited():
    monthly = _first_place_months((2026, 1), (2026, 2), (2026, 3))
    context = _context("ava", date(2026, 4, 15), monthly=monthly)
    assert evaluate_badges(context) == evaluate_badges(context)
    assert evaluate_badges(context, only=[catalog.DOMINATOR]) == frozenset({catalog.DOMINATOR})


def test_mixed_naive_and_aware_timestamps_compare_as_utc():
    naive = CompletedTaskRecord(employee_id="ava", completed_at=datetime(2026, 2, 3, 9), type_points=60)
    assert naive.completed_at.tzinfo is not None
    targets = [_target("ava", 2026, 2, 100)]
    tasks = [naive, _task("ava", datetime(2026, 2, 10, 9, tzinfo=UTC), 50)]
    assert crossing_timestamp(tasks, 100) == datetime(2026, 2, 10, 9, tzinfo=UTC)
    achieved = evaluate_badges(_context("ava", date(2026, 3, 10), targets=targets, tasks=tasks))
    assert catalog.THE_UNSTOPPABLE in achieved


def test_new_complete_month_never_takes_badges_away():
    monthly = _first_place_months((2026, 1), (2026, 2), (2026, 3))
    targets = [
        _target("ava", 2026, 1, 100),
        _target("ava", 2026, 2, 50),
        _target("ava", 2026, 3, 50),
        _target("ava", 2026, 4, 50),
    ]
    tasks = [
        _task("ava", datetime(2026, 1, 5, 9, tzinfo=UTC), 60),
        _task("ava", datetime(2026, 1, 10, 9, tzinfo=UTC), 90),
        _task("ava", datetime(2026, 2, 4, 9, tzinfo=UTC), 150),
        _task("ava", datetime(2026, 3, 3, 9, tzinfo=UTC), 150),
    ]
    march_tasks = [task for task in tasks if task.completed_at.month == 3]
    before = evaluate_badges(
        _context(
            "ava",
            date(2026, 4, 15),
            monthly=monthly,
            targets=targets,
            tasks=tasks,
            previous_month_tasks=march_tasks,
            previous_month_targets=[target for target in targets if target.month == 3],
        )
    )
    assert {catalog.TRIPLE_CROWN_CHAMPION, catalog.THE_UNSTOPPABLE, catalog.BEAST_MODE} <= before

    april_tasks = [
        _task("ava", datetime(2026, 4, 2, 9, tzinfo=UTC), 100),
        _task("ben", datetime(2026, 4, 20, 9, tzinfo=UTC), 400),
    ]
    # Ben sets a new single-month record in April.
    later_monthly = monthly + [_monthly("ben", 2026, 4, 400), _monthly("ava", 2026, 4, 100)]
    after = evaluate_badges(
        _context(
            "ava",
            date(2026, 5, 15),
            monthly=later_monthly,
            targets=targets,
            tasks=tasks + april_tasks,
            previous_month_tasks=april_tasks,
            previous_month_targets=[target for target in targets if target.month == 4],
        )
    )
    assert before - {catalog.THE_RECORD_BREAKER} <= after
    assert catalog.THE_RECORD_BREAKER in before
    assert catalog.THE_RECORD_BREAKER not in after
