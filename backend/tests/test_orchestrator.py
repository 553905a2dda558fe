"""Tests for concurrent fan-out, merging, status and caching in the orchestrator."""
import asyncio
from datetime import datetime, timezone

import pytest

from cv_enrichment.exceptions import SourceFetchError, SourceNotFoundError
from cv_enrichment.schemas.external_data import (
    DataSourceResult,
    GitHubData,
    GitHubProfile,
    GitHubRepository,
    LinkedInData,
    LinkedInProfile,
    OrchestrationOptions,
    OrchestrationRequest,
    PersonalWebsite,
    PortfolioProject,
    SourceId,
    UserHints,
    WebPresence,
)
from cv_enrichment.services.adapters import SourceAdapter
from cv_enrichment.services.orchestrator import (
    FETCH_TIMEOUT_ERROR,
    ExternalDataOrchestrator,
    count_data_points,
    determine_status,
)
from cv_enrichment.services.resilience import RetryPolicy
from cv_enrichment.services.validation import ValidationService

from conftest import make_cv


class FakeAdapter(SourceAdapter):
    def __init__(self, source_id, payload=None, error=None, delay=0.0):
        super().__init__()
        self.source_id = source_id
        self.schema = type(payload) if payload is not None else GitHubData
        self.payload = payload
        self.error = error
        self.delay = delay
        self.calls = []

    async def _fetch(self, identifier):
        self.calls.append(identifier)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.payload


def github_payload():
    return GitHubData(
        profile=GitHubProfile(username="ada", bio="Analytical engine enthusiast"),
        repositories=[
            GitHubRepository(name=f"repo{i}", language="Python", stars=i, url=f"https://github.com/ada/repo{i}")
            for i in range(7)
        ],
    )


def make_orchestrator(cache, adapters, **kwargs):
    kwargs.setdefault("retry_policy", RetryPolicy(max_attempts=1, initial_delay=0))
    return ExternalDataOrchestrator(
        {a.source_id: a for a in adapters},
        ValidationService(),
        cache,
        **kwargs,
    )


def make_request(data_types, **kwargs):
    kwargs.setdefault("cv_data", make_cv(personal_info={
        "name": "Ada Lovelace",
        "github": "ada",
        "linkedin": "https://www.linkedin.com/in/ada",
        "website": "https://ada.dev",
    }))
    return OrchestrationRequest(user_id="user-1", cv_id="cv-1", data_types=data_types, **kwargs)


class TestSourceSelection:
    def test_unknown_sources_are_dropped_and_sorted_by_priority(self, cache):
        orchestrator = make_orchestrator(cache, [
            FakeAdapter(SourceId.WEBSITE, PersonalWebsite(url="https://ada.dev")),
            FakeAdapter(SourceId.GITHUB, GitHubData()),
        ])
        active = orchestrator.get_active_sources(["website", "bogus", "github", "github"])
        assert [s.id for s in active] == [SourceId.GITHUB, SourceId.WEBSITE]

    def test_cache_key_is_order_independent(self):
        a = ExternalDataOrchestrator.cache_key("u", "cv", ["web", "github"])
        b = ExternalDataOrchestrator.cache_key("u", "cv", ["github", "web"])
        assert a == b == "external_data:u:cv:github_web"

    def test_hints_take_precedence_over_cv(self):
        request = make_request(["github"], hints=UserHints(github="other"))
        assert ExternalDataOrchestrator.resolve_identifier(SourceId.GITHUB, request) == "other"
        assert ExternalDataOrchestrator.resolve_identifier(SourceId.WEB, request) == "Ada Lovelace"

    def test_count_data_points(self):
        assert count_data_points({"a": 1, "b": [1, 2], "c": None, "d": {"e": "x"}}) == 6


class TestOrchestrate:
    async def test_all_sources_succeed(self, cache):
        orchestrator = make_orchestrator(cache, [
            FakeAdapter(SourceId.GITHUB, github_payload()),
            FakeAdapter(SourceId.LINKEDIN, LinkedInData(
                profile=LinkedInProfile(summary="Mathematician and writer"),
                skills=["Mathematics"],
            )),
            FakeAdapter(SourceId.WEBSITE, PersonalWebsite(
                url="https://ada.dev",
                portfolio_projects=[PortfolioProject(title="Notes on the Engine")],
            )),
        ])
        result = await orchestrator.orchestrate(make_request(["github", "linkedin", "website"]))

        assert result.status == "success"
        assert result.sources_queried == 3
        assert result.sources_successful == 3
        assert result.cache_hits == 0
        assert result.errors == []

        data = result.enriched_data
        assert data.github.profile.username == "ada"
        assert data.aggregated_skills == ["Mathematics"]
        assert len(data.aggregated_projects) == 6  # five GitHub repos + one website project
        assert data.professional_summary == "Mathematician and writer"
        assert data.validation_status is not None
        assert all(r.success for r in data.sources)

    async def test_partial_failure(self, cache):
        orchestrator = make_orchestrator(cache, [
            FakeAdapter(SourceId.GITHUB, github_payload()),
            FakeAdapter(SourceId.WEBSITE, error=SourceNotFoundError("Website not found", source="website")),
        ])
        result = await orchestrator.orchestrate(make_request(["github", "website"]))

        assert result.status == "partial"
        assert result.sources_successful == 1
        assert result.errors == ["website: Website not found"]
        assert result.enriched_data.professional_summary == "Analytical engine enthusiast"

    async def test_all_sources_fail(self, cache):
        orchestrator = make_orchestrator(cache, [
            FakeAdapter(SourceId.GITHUB, error=SourceFetchError("boom", source="github")),
        ])
        result = await orchestrator.orchestrate(make_request(["github"]))
        assert result.status == "failed"
        assert result.sources_successful == 0

    async def test_missing_identifier_is_a_source_failure(self, cache):
        adapter = FakeAdapter(SourceId.GITHUB, github_payload())
        orchestrator = make_orchestrator(cache, [adapter])
        result = await orchestrator.orchestrate(make_request(["github"], cv_data=None))

        assert result.status == "failed"
        assert result.errors == ["github: No identifier available for GitHub"]
        assert adapter.calls == []

    async def test_no_active_sources(self, cache):
        orchestrator = make_orchestrator(cache, [FakeAdapter(SourceId.GITHUB, github_payload())])
        result = await orchestrator.orchestrate(make_request(["bogus"]))
        assert result.status == "success"
        assert result.sources_queried == 0
        assert result.enriched_data.sources == []

    async def test_slow_source_times_out(self, cache):
        orchestrator = make_orchestrator(
            cache,
            [
                FakeAdapter(SourceId.GITHUB, github_payload()),
                FakeAdapter(SourceId.WEB, WebPresence(), delay=5),
            ],
            timeout_seconds=0.2,
        )
        result = await orchestrator.orchestrate(make_request(["github", "web"]))

        assert result.status == "partial"
        assert result.errors == [f"web: {FETCH_TIMEOUT_ERROR}"]
        web = next(r for r in result.enriched_data.sources if r.source == SourceId.WEB)
        assert web.success is False
        assert result.fetch_duration < 5000

    async def test_request_timeout_overrides_default(self, cache):
        orchestrator = make_orchestrator(
            cache,
            [FakeAdapter(SourceId.GITHUB, github_payload(), delay=5)],
            timeout_seconds=30,
        )
        request = make_request(["github"], options=OrchestrationOptions(timeout=0.1))
        result = await orchestrator.orchestrate(request)
        assert result.status == "failed"
        assert result.errors == [f"github: {FETCH_TIMEOUT_ERROR}"]

    async def test_transient_errors_are_retried(self, cache):
        class Flaky(FakeAdapter):
            async def _fetch(self, identifier):
                self.calls.append(identifier)
                if len(self.calls) < 3:
                    raise SourceFetchError("temporary", source="github")
                return github_payload()

        adapter = Flaky(SourceId.GITHUB, GitHubData())
        orchestrator = make_orchestrator(cache, [adapter], retry_policy=RetryPolicy(3, 0))
        result = await orchestrator.orchestrate(make_request(["github"]))
        assert result.status == "success"
        assert len(adapter.calls) == 3


class TestCaching:
    async def test_second_request_is_served_from_cache(self, cache):
        adapter = FakeAdapter(SourceId.GITHUB, github_payload())
        orchestrator = make_orchestrator(cache, [adapter])

        first = await orchestrator.orchestrate(make_request(["github"]))
        second = await orchestrator.orchestrate(make_request(["github"]))

        assert len(adapter.calls) == 1
        assert second.cache_hits == 1
        assert second.sources_queried == 0
        assert second.status == "success"
        assert second.enriched_data.model_dump() == first.enriched_data.model_dump()
        assert second.request_id != first.request_id

    async def test_force_refresh_bypasses_cache(self, cache):
        adapter = FakeAdapter(SourceId.GITHUB, github_payload())
        orchestrator = make_orchestrator(cache, [adapter])

        await orchestrator.orchestrate(make_request(["github"]))
        refreshed = await orchestrator.orchestrate(
            make_request(["github"], options=OrchestrationOptions(force_refresh=True))
        )
        assert refreshed.cache_hits == 0
        assert len(adapter.calls) == 2

    async def test_request_is_not_mutated(self, cache):
        adapter = FakeAdapter(SourceId.GITHUB, github_payload())
        orchestrator = make_orchestrator(cache, [adapter])
        request = make_request(["github", "bogus"])
        before = request.model_dump()
        result = await orchestrator.orchestrate(request)

        assert request.model_dump() == before
        assert len(adapter.calls) == 1
        assert result.sources_queried == 1
        assert result.status == "success"

    async def test_failed_results_are_not_cached(self, cache):
        adapter = FakeAdapter(SourceId.GITHUB, error=SourceFetchError("boom", source="github"))
        orchestrator = make_orchestrator(cache, [adapter])

        await orchestrator.orchestrate(make_request(["github"]))
        second = await orchestrator.orchestrate(make_request(["github"]))

        assert len(adapter.calls) == 2
        assert second.cache_hits == 0
        assert second.status == "failed"
        assert await cache.get(ExternalDataOrchestrator.cache_key("user-1", "cv-1", ["github"])) is None


@pytest.mark.parametrize("status_inputs,expected", [
    ([True, True], "success"),
    ([True, False], "partial"),
    ([False, False], "failed"),
])
def test_determine_status(status_inputs, expected):
    results = [
        DataSourceResult(source=SourceId.GITHUB, success=ok, fetched_at=datetime.now(timezone.utc))
        for ok in status_inputs
    ]
    errors = [] if all(status_inputs) else ["github: boom"]
    assert determine_status(results, errors) == expected
