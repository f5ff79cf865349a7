from __future__ import annotations

from fastapi import APIRouter, Depends

from src.api.dependencies import get_badges_service, get_scoreboard_service
from src.schemas.badges import EmployeeBadgesResponse
from src.schemas.scoreboard import EmployeeSummaryResponse
from src.services.badges_service import BadgesService
from src.services.scoreboard_service import ScoreboardService
from src.shared.response import ResponseEnvelope, build_meta
from src.shared.time import today_in

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("/{employee_id}/summary")
def employee_summary(
    employee_id: str,
    service: ScoreboardService = Depends(get_scoreboard_service),
) -> ResponseEnvelope[EmployeeSummaryResponse]:
    data = service.get_employee_summary(employee_id)
    progress = data.target_progress
    meta = build_meta(
        source="monthly_scores,yearly_scores,monthly_targets",
        time_window=f"{progress.year}-{progress.month:02d}",
        as_of=today_in(service.tz),
        timezone_name=service.settings.scoreboard_timezone,
    )
    return ResponseEnvelope(data=data, meta=meta)


@router.get("/{employee_id}/badges")
def employee_badges(
    employee_id: str,
    service: BadgesService = Depends(get_badges_service),
) -> ResponseEnvelope[EmployeeBadgesResponse]:
    data = service.get_employee_badges(employee_id)
    meta = build_meta(
        source="employees,monthly_scores,yearly_scores,monthly_targets,projects",
        time_window="complete_periods",
        as_of=data.evaluated_on,
        timezone_name=service.settings.scoreboard_timezone,
    )
    return ResponseEnvelope(data=data, meta=meta)
