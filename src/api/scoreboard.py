from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_scoreboard_service
from src.schemas.scoreboard import (
    LeaderboardResponse,
    MonthlyLeaderboardFilters,
    YearlyLeaderboardFilters,
)
from src.services.scoreboard_service import ScoreboardService
from src.shared.response import Meta, ResponseEnvelope, build_meta
from src.shared.time import today_in

router = APIRouter(prefix="/scoreboard", tags=["scoreboard"])


def get_monthly_leaderboard_filters(
    month: Optional[int] = Query(default=None, ge=1, le=12),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200),
) -> MonthlyLeaderboardFilters:
    return MonthlyLeaderboardFilters(month=month, year=year, page=page, page_size=page_size)


def get_yearly_leaderboard_filters(
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=200),
) -> YearlyLeaderboardFilters:
    return YearlyLeaderboardFilters(year=year, page=page, page_size=page_size)


def _leaderboard_meta(data: LeaderboardResponse, source: str, service: ScoreboardService) -> Meta:
    time_window = f"{data.year}-{data.month:02d}" if data.month else str(data.year)
    return build_meta(
        source=source,
        time_window=time_window,
        as_of=today_in(service.tz),
        timezone_name=service.settings.scoreboard_timezone,
        data_status="final" if data.is_complete else "in_progress",
    )


@router.get("/monthly")
def monthly_leaderboard(
    filters: MonthlyLeaderboardFilters = Depends(get_monthly_leaderboard_filters),
    service: ScoreboardService = Depends(get_scoreboard_service),
) -> ResponseEnvelope[LeaderboardResponse]:
    data, pagination = service.get_monthly_leaderboard(filters)
    meta = _leaderboard_meta(data, "monthly_scores", service)
    return ResponseEnvelope(data=data, pagination=pagination, meta=meta)


@router.get("/yearly")
def yearly_leaderboard(
    filters: YearlyLeaderboardFilters = Depends(get_yearly_leaderboard_filters),
    service: ScoreboardService = Depends(get_scoreboard_service),
) -> ResponseEnvelope[LeaderboardResponse]:
    data, pagination = service.get_yearly_leaderboard(filters)
    meta = _leaderboard_meta(data, "yearly_scores", service)
    return ResponseEnvelope(data=data, pagination=pagination, meta=meta)


@router.get("/last-month")
def last_month_podium(
    limit: int = Query(default=3, ge=1, le=50),
    service: ScoreboardService = Depends(get_scoreboard_service),
) -> ResponseEnvelope[LeaderboardResponse]:
    data = service.get_last_month_podium(limit=limit)
    return ResponseEnvelope(data=data, meta=_leaderboard_meta(data, "monthly_scores", service))
