"""
Usage tracking - remembers the profile hints a user supplied and records one
usage event per enrichment request.

Both writes are best effort: failures are logged and never reach the caller.
"""
import asyncio
import logging
from typing import List, Optional, Set

from sqlalchemy.ext.asyncio import async_sessionmaker

from ..models import ExternalDataUsageEvent, UserExternalProfile
from ..schemas.external_data import OrchestrationResult, UserHints

logger = logging.getLogger(__name__)


class UsageTracker:
    def __init__(self, session_maker: async_sessionmaker):
        self._session_maker = session_maker
        self._background: Set[asyncio.Task] = set()

    async def store_hints(self, user_id: str, hints: UserHints) -> None:
        """Merge non-empty hints into the user's stored external profile."""
        values = hints.model_dump(exclude_none=True)
        if not values:
            return

        async with self._session_maker() as db:
            try:
                profile = await db.get(UserExternalProfile, user_id)
                if profile is None:
                    profile = UserExternalProfile(user_id=user_id)
                    db.add(profile)
                for field, value in values.items():
                    setattr(profile, field, value)
                await db.commit()
                logger.info(f"[USAGE] Stored hints for user {user_id}: {sorted(values)}")
            except Exception as e:
                await db.rollback()
                logger.error(f"[USAGE] Failed to store hints for user {user_id}: {e}")

    async def get_hints(self, user_id: str) -> Optional[UserHints]:
        async with self._session_maker() as db:
            profile = await db.get(UserExternalProfile, user_id)
            if profile is None:
                return None
            return UserHints(
                github=profile.github,
                linkedin=profile.linkedin,
                website=profile.website,
                name=profile.name,
            )

    async def record_usage(
        self,
        user_id: str,
        cv_id: Optional[str],
        sources: List[str],
        result: OrchestrationResult,
    ) -> None:
        async with self._session_maker() as db:
            try:
                db.add(ExternalDataUsageEvent(
                    user_id=user_id,
                    cv_id=cv_id,
                    request_id=result.request_id,
                    sources=sources,
                    success=result.status != "failed",
                    status=result.status,
                    fetch_duration_ms=result.fetch_duration,
                    sources_queried=result.sources_queried,
                    sources_successful=result.sources_successful,
                    cache_hits=result.cache_hits,
                    errors=result.errors,
                ))
                await db.commit()
            except Exception as e:
                await db.rollback()
                logger.error(f"[USAGE] Failed to record usage for {result.request_id}: {e}")

    def track_in_background(
        self,
        user_id: str,
        cv_id: Optional[str],
        sources: List[str],
        result: OrchestrationResult,
    ) -> asyncio.Task:
        """Fire-and-forget ``record_usage``; the task reference is held until it finishes."""
        task = asyncio.create_task(self.record_usage(user_id, cv_id, sources, result))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for pending background writes (shutdown and tests)."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
