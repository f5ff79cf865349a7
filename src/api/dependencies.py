from __future__ import annotations

from functools import lru_cache

from src.core.config import get_settings
from src.repositories.memory_scoreboard_repository import InMemoryScoreboardRepository
from src.repositories.scoreboard_repository import ScoreboardReader, ScoreboardRepository
from src.services.badges_service import BadgesService
from src.services.scoreboard_service import ScoreboardService
from src.shared.time import resolve_timezone


@lru_cache
def get_scoreboard_repository() -> ScoreboardReader:
    settings = get_settings()
    if settings.data_backend == "memory":
        tz = resolve_timezone(settings.scoreboard_timezone)
        if settings.fixture_path:
            return InMemoryScoreboardRepository.from_fixture(settings.fixture_path, tz=tz)
        return InMemoryScoreboardRepository(tz=tz)
    return ScoreboardRepository()


def get_scoreboard_service() -> ScoreboardService:
    return ScoreboardService(repository=get_scoreboard_repository())


def get_badges_service() -> BadgesService:
    return BadgesService(repository=get_scoreboard_repository())
