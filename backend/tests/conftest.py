"""
Shared fixtures: an in-memory SQLite database, a controllable clock, and
small builders for CVs and external data.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from cv_enrichment import models  # noqa: F401
from cv_enrichment.config import Settings
from cv_enrichment.database import Base
from cv_enrichment.schemas.cv import ParsedCV
from cv_enrichment.schemas.external_data import EnrichedCVData
from cv_enrichment.services.cache import CacheService


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
async def session_maker():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def cache(session_maker, clock):
    return CacheService(session_maker, memory_max_entries=3, clock=clock)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        github_api_url="https://api.github.test",
        linkedin_api_url="https://linkedin.test/profile",
        linkedin_api_key="li-key",
        google_search_url="https://search.test/customsearch",
        google_search_api_key="search-key",
        google_search_engine_id="engine",
        retry_initial_delay_seconds=0,
    )


def make_cv(**overrides) -> ParsedCV:
    data = {
        "personal_info": {"name": "Ada Lovelace", "email": "ada@example.com", "title": "Engineer"},
        "skills": ["Python"],
    }
    data.update(overrides)
    return ParsedCV.model_validate(data)


def make_external(**overrides) -> EnrichedCVData:
    data = {"user_id": "user-1", "fetched_at": datetime(2024, 6, 1, tzinfo=timezone.utc)}
    data.update(overrides)
    return EnrichedCVData.model_validate(data)
