from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Header

from src.api.dependencies import get_badges_service
from src.core.config import get_settings
from src.core.errors import BadRequestError
from src.schemas.badges import BadgeCatalogItem, BadgeRunResult
from src.services.badges_service import BadgesService
from src.shared.response import ResponseEnvelope, build_meta

router = APIRouter(prefix="/badges", tags=["badges"])


def require_badge_run_access(x_badge_run_token: Optional[str] = Header(default=None)) -> None:
    configured = (get_settings().badge_run_token or "").strip()
    if not configured:
        raise BadRequestError("Badge run endpoint is disabled")
    if not x_badge_run_token or x_badge_run_token != configured:
        raise BadRequestError("Invalid badge run token")


@router.get("/catalog")
def badge_catalog(
    service: BadgesService = Depends(get_badges_service),
) -> ResponseEnvelope[List[BadgeCatalogItem]]:
    return ResponseEnvelope(
        data=service.get_catalog(),
        meta=build_meta(source="badge_catalog", time_window="static"),
    )


@router.post("/run", dependencies=[Depends(require_badge_run_access)])
def badge_run(
    service: BadgesService = Depends(get_badges_service),
) -> ResponseEnvelope[BadgeRunResult]:
    result = service.run_badge_job(trigger="api")
    meta = build_meta(
        source="employee_badge_awards",
        time_window="complete_periods",
        as_of=result.evaluated_on,
        timezone_name=service.settings.scoreboard_timezone,
        stamp=True,
    )
    return ResponseEnvelope(data=result, meta=meta)
