from __future__ import annotations

from fastapi import APIRouter

from src.api.badges import router as badges_router
from src.api.employees import router as employees_router
from src.api.health import router as health_router
from src.api.scoreboard import router as scoreboard_router


api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(scoreboard_router)
api_router.include_router(employees_router)
api_router.include_router(badges_router)
