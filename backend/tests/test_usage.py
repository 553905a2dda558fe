"""Tests for stored profile hints and usage events."""
from sqlalchemy import select

from cv_enrichment.models import ExternalDataUsageEvent
from cv_enrichment.schemas.external_data import OrchestrationResult, UserHints
from cv_enrichment.services.usage import UsageTracker

from conftest import make_external


def make_result(status="failed", errors=None):
    return OrchestrationResult(
        request_id="req_1_abc",
        status=status,
        enriched_data=make_external(),
        fetch_duration=42,
        sources_queried=2,
        sources_successful=0 if status == "failed" else 2,
        cache_hits=0,
        errors=errors or [],
    )


async def test_hints_are_merged_not_replaced(session_maker):
    tracker = UsageTracker(session_maker)
    await tracker.store_hints("user-1", UserHints(github="ada", name="Ada"))
    await tracker.store_hints("user-1", UserHints(website="https://ada.dev"))

    hints = await tracker.get_hints("user-1")
    assert hints == UserHints(github="ada", website="https://ada.dev", name="Ada")


async def test_unknown_user_has_no_hints(session_maker):
    assert await UsageTracker(session_maker).get_hints("nobody") is None


async def test_failed_request_is_recorded_as_unsuccessful(session_maker):
    tracker = UsageTracker(session_maker)
    await tracker.track_in_background("user-1", "cv-1", ["github", "web"], make_result(errors=["github: boom"]))
    await tracker.drain()

    async with session_maker() as db:
        event = (await db.execute(select(ExternalDataUsageEvent))).scalar_one()
    assert event.success is False
    assert event.status == "failed"
    assert event.sources == ["github", "web"]
    assert event.errors == ["github: boom"]
    assert event.fetch_duration_ms == 42
    assert event.created_at is not None
