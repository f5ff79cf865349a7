from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Any, Dict

os.environ.setdefault("SCOREBOARD_DATA_BACKEND", "memory")
os.environ.setdefault("BADGE_RUN_TOKEN", "test-run-token")

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_badges_service, get_scoreboard_service
from src.main import create_app
from src.repositories.memory_scoreboard_repository import InMemoryScoreboardRepository
from src.services.badges_service import BadgesService
from src.services.scoreboard_service import ScoreboardService


def _project(project_id: str, employee_id: str, type_id: str, completed_at: str, **extra: Any) -> Dict[str, Any]:
    row = {
        "id": project_id,
        "assigned_to": employee_id,
        "type_id": type_id,
        "status": "completed",
        "completed_at": completed_at,
    }
    row.update(extra)
    return row


def build_scoreboard_payload() -> Dict[str, Any]:
    return {
        "employees": [
            {"id": "emp-ava", "name": "Ava Stone", "email": "ava@example.com", "rank": 1,
             "is_admin": False, "created_at": "2025-06-01T09:00:00Z"},
            {"id": "emp-ben", "name": "Ben Ortiz", "email": "ben@example.com", "rank": 2,
             "is_admin": False, "created_at": "2025-07-15T09:00:00Z"},
            {"id": "emp-cleo", "name": "Cleo Park", "email": "cleo@example.com", "rank": 3,
             "is_admin": False, "created_at": "2025-09-01T09:00:00Z"},
            {"id": "emp-admin", "name": "Ops Admin", "email": "ops@example.com", "rank": None,
             "is_admin": True, "created_at": "2025-01-01T09:00:00Z"},
        ],
        "project_types": [
            {"id": "type-small", "points": 10},
            {"id": "type-medium", "points": 25},
            {"id": "type-large", "points": 60},
        ],
        "projects": [
            _project("p-1", "emp-ava", "type-large", "2026-01-05T10:00:00Z"),
            _project("p-2", "emp-ava", "type-large", "2026-01-12T10:00:00Z", status="approved"),
            _project("p-3", "emp-ben", "type-medium", "2026-01-08T10:00:00Z"),
            _project("p-4", "emp-cleo", "type-small", "2026-01-20T10:00:00Z", points_override=40),
            _project("p-5", "emp-admin", "type-large", "2026-01-15T10:00:00Z", points_override=180),
            _project("p-6", "emp-ava", "type-large", "2026-02-03T10:00:00Z"),
            _project("p-7", "emp-ava", "type-large", "2026-02-09T10:00:00Z"),
            _project("p-8", "emp-ben", "type-large", "2026-02-10T10:00:00Z"),
            _project("p-9", "emp-ava", "type-large", "2026-03-02T10:00:00Z"),
            _project("p-10", "emp-cleo", "type-medium", "2026-03-20T10:00:00Z"),
            _project("p-11", "emp-cleo", "type-large", "2026-03-25T10:00:00Z", status="in_progress"),
            _project("p-12", "emp-ben", "type-large", None),
        ],
        "monthly_targets": [
            {"employee_id": "emp-ava", "month": 1, "year": 2026, "target_points": 100},
            {"employee_id": "emp-ava", "month": 2, "year": 2026, "target_points": 50},
            {"employee_id": "emp-ava", "month": 3, "year": 2026, "target_points": 50},
        ],
        "badge_awards": [],
    }


@pytest.fixture()
def scoreboard_payload() -> Dict[str, Any]:
    return build_scoreboard_payload()


@pytest.fixture()
def scoreboard_settings() -> SimpleNamespace:
    return SimpleNamespace(
        scoreboard_timezone="UTC",
        badge_epoch_year=2026,
        badge_lookback_years=50,
        default_monthly_target=100,
        badge_fetch_workers=2,
    )


@pytest.fixture()
def scoreboard_repository(scoreboard_payload) -> InMemoryScoreboardRepository:
    return InMemoryScoreboardRepository.from_payload(scoreboard_payload)


@pytest.fixture()
def scoreboard_service(scoreboard_repository, scoreboard_settings) -> ScoreboardService:
    return ScoreboardService(repository=scoreboard_repository, settings=scoreboard_settings)


@pytest.fixture()
def badges_service(scoreboard_repository, scoreboard_settings) -> BadgesService:
    return BadgesService(repository=scoreboard_repository, settings=scoreboard_settings)


@pytest.fixture()
def client(scoreboard_service, badges_service) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_scoreboard_service] = lambda: scoreboard_service
    app.dependency_overrides[get_badges_service] = lambda: badges_service
    return TestClient(app)
