"""
External Data Orchestrator

Fans a request out to the requested source adapters concurrently, bounds the
whole batch with one timeout, merges whatever came back into EnrichedCVData,
validates it and caches the validated result.

Sources that fail or time out are reported per source; they never fail the
whole request. An exception raised while merging or validating does.
"""
import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from ..exceptions import MissingIdentifierError
from ..schemas.external_data import (
    DataSourceResult,
    EnrichedCVData,
    ExternalDataSource,
    GitHubData,
    LinkedInData,
    OrchestrationRequest,
    OrchestrationResult,
    PersonalWebsite,
    PortfolioProject,
    SourceId,
    SourcePayload,
    WebPresence,
)
from .adapters import SourceAdapter
from .cache import CacheService
from .resilience import RetryPolicy
from .validation import ValidationService

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_ERROR = "Fetch timeout"
GITHUB_PROJECTS_MERGED = 5

DEFAULT_SOURCES: List[ExternalDataSource] = [
    ExternalDataSource(id=SourceId.GITHUB, name="GitHub", type=SourceId.GITHUB, priority=1),
    ExternalDataSource(id=SourceId.LINKEDIN, name="LinkedIn", type=SourceId.LINKEDIN, priority=2),
    ExternalDataSource(id=SourceId.WEB, name="Web Search", type=SourceId.WEB, priority=3),
    ExternalDataSource(id=SourceId.WEBSITE, name="Personal Website", type=SourceId.WEBSITE, priority=4),
]


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def count_data_points(data: Any) -> int:
    """Count scalar leaves plus list lengths in a dumped payload."""
    if data is None:
        return 0
    if isinstance(data, list):
        return len(data) + sum(count_data_points(item) for item in data)
    if isinstance(data, dict):
        return sum(count_data_points(value) for value in data.values())
    return 1


def determine_status(results: List[DataSourceResult], errors: List[str]) -> str:
    successful = sum(1 for r in results if r.success)
    if successful == len(results) and not errors:
        return "success"
    if successful > 0:
        return "partial"
    return "failed"


class ExternalDataOrchestrator:
    def __init__(
        self,
        adapters: Dict[SourceId, SourceAdapter],
        validation: ValidationService,
        cache: CacheService,
        retry_policy: Optional[RetryPolicy] = None,
        timeout_seconds: float = 30.0,
        cache_ttl: int = 3600,
        sources: Optional[List[ExternalDataSource]] = None,
    ):
        self.adapters = adapters
        self.validation = validation
        self.cache = cache
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout_seconds = timeout_seconds
        self.cache_ttl = cache_ttl
        self.sources: Dict[str, ExternalDataSource] = {
            s.id.value: s for s in (sources or DEFAULT_SOURCES)
        }
        self._mergers: Dict[SourceId, Callable[[EnrichedCVData, Any], None]] = {
            SourceId.GITHUB: self._merge_github,
            SourceId.LINKEDIN: self._merge_linkedin,
            SourceId.WEB: self._merge_web,
            SourceId.WEBSITE: self._merge_website,
        }
        logger.info(f"[ORCHESTRATOR] Initialized with sources: {', '.join(a.value for a in adapters)}")

    # ------------------------------------------------------------------
    # Source registry
    # ------------------------------------------------------------------

    def list_sources(self) -> List[ExternalDataSource]:
        return sorted(self.sources.values(), key=lambda s: s.priority)

    def get_active_sources(self, data_types: List[str]) -> List[ExternalDataSource]:
        """Known, enabled, adapter-backed sources for ``data_types`` by priority. Unknown ids are dropped."""
        active = {}
        for data_type in data_types:
            source = self.sources.get(data_type)
            if source is None or not source.enabled or source.id not in self.adapters:
                continue
            active[source.id] = source
        return sorted(active.values(), key=lambda s: s.priority)

    @staticmethod
    def cache_key(user_id: str, cv_id: Optional[str], data_types: List[str]) -> str:
        return f"external_data:{user_id}:{cv_id}:{'_'.join(sorted(data_types))}"

    @staticmethod
    def resolve_identifier(source_id: SourceId, request: OrchestrationRequest) -> Optional[str]:
        """Explicit hint first, then the CV's personal info."""
        personal = request.cv_data.personal_info if request.cv_data else None
        if source_id == SourceId.GITHUB:
            return request.hints.github or (personal.github if personal else None)
        if source_id == SourceId.LINKEDIN:
            return request.hints.linkedin or (personal.linkedin if personal else None)
        if source_id == SourceId.WEBSITE:
            return request.hints.website or (personal.website if personal else None)
        if source_id == SourceId.WEB:
            return request.hints.name or (personal.name if personal else None)
        return None

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def orchestrate(self, request: OrchestrationRequest) -> OrchestrationResult:
        started = time.monotonic()
        request_id = generate_request_id()
        active_sources = self.get_active_sources(request.data_types)
        cache_key = self.cache_key(request.user_id, request.cv_id, [s.id.value for s in active_sources])

        logger.info(
            f"[ORCHESTRATOR] Starting {request_id}: user={request.user_id}, "
            f"sources={[s.id.value for s in active_sources]}"
        )

        if not request.options.force_refresh:
            cached = await self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"[ORCHESTRATOR] Cache hit for {request_id}")
                return OrchestrationResult(
                    request_id=request_id,
                    status="success",
                    enriched_data=EnrichedCVData.model_validate(cached),
                    fetch_duration=_elapsed_ms(started),
                    sources_queried=0,
                    sources_successful=0,
                    cache_hits=1,
                    errors=[],
                )

        enriched = EnrichedCVData(
            original_cv_id=request.cv_id,
            user_id=request.user_id,
            fetched_at=datetime.now(timezone.utc),
        )
        source_results: List[DataSourceResult] = []
        errors: List[str] = []

        timeout = request.options.timeout or self.timeout_seconds
        settled = await self._fan_out(active_sources, request, timeout)

        for source, payload, error in settled:
            if error is None:
                source_results.append(DataSourceResult(
                    source=source.id,
                    success=True,
                    fetched_at=datetime.now(timezone.utc),
                    data_points=count_data_points(payload.model_dump(mode="python")),
                ))
                self._mergers[source.id](enriched, payload)
            else:
                source_results.append(DataSourceResult(
                    source=source.id,
                    success=False,
                    fetched_at=datetime.now(timezone.utc),
                    error=error,
                ))
                errors.append(f"{source.id.value}: {error}")

        enriched.sources = source_results
        enriched.professional_summary = self._pick_summary(enriched)

        validated = self.validation.validate(enriched)
        status = determine_status(source_results, errors)
        if status == "failed":
            logger.warning(f"[ORCHESTRATOR] Not caching {request_id}: every source failed")
        else:
            await self.cache.set(cache_key, validated.model_dump(mode="json"), self.cache_ttl)

        successful = sum(1 for r in source_results if r.success)
        duration = _elapsed_ms(started)
        logger.info(
            f"[ORCHESTRATOR] Finished {request_id}: status={status}, "
            f"{successful}/{len(active_sources)} sources, {duration}ms"
        )

        return OrchestrationResult(
            request_id=request_id,
            status=status,
            enriched_data=validated,
            fetch_duration=duration,
            sources_queried=len(active_sources),
            sources_successful=successful,
            cache_hits=0,
            errors=errors,
        )

    async def _fan_out(self, sources: List[ExternalDataSource], request: OrchestrationRequest, timeout: float):
        """
        Run one fetch per source under a single deadline. Returns
        (source, payload, error) tuples, completed sources in settle order
        followed by the ones cancelled at the deadline.
        """
        if not sources:
            return []

        settle_order: List[asyncio.Task] = []
        tasks: Dict[asyncio.Task, ExternalDataSource] = {}
        for source in sources:
            task = asyncio.create_task(self._fetch_from_source(source, request))
            task.add_done_callback(settle_order.append)
            tasks[task] = source

        done, pending = await asyncio.wait(tasks, timeout=timeout)

        ordered = [t for t in settle_order if t in done]
        ordered += [t for t in done if t not in ordered]

        settled = []
        for task in ordered:
            source = tasks[task]
            try:
                settled.append((source, task.result(), None))
            except asyncio.CancelledError:
                settled.append((source, None, "Fetch cancelled"))
            except Exception as e:
                logger.error(f"[ORCHESTRATOR] Source {source.id.value} failed: {e}")
                settled.append((source, None, str(e) or type(e).__name__))

        for task in pending:
            source = tasks[task]
            task.cancel()
            logger.warning(f"[ORCHESTRATOR] Source {source.id.value} timed out after {timeout}s")
            settled.append((source, None, FETCH_TIMEOUT_ERROR))

        return settled

    async def _fetch_from_source(self, source: ExternalDataSource, request: OrchestrationRequest) -> SourcePayload:
        identifier = self.resolve_identifier(source.id, request)
        if not identifier:
            raise MissingIdentifierError(f"No identifier available for {source.name}", source=source.id.value)

        adapter = self.adapters[source.id]
        return await self.retry_policy.run(
            f"fetch-{source.id.value}",
            lambda: adapter.fetch_data(identifier),
        )

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    @staticmethod
    def _merge_github(enriched: EnrichedCVData, data: GitHubData) -> None:
        enriched.github = data
        for repo in data.repositories[:GITHUB_PROJECTS_MERGED]:
            enriched.aggregated_projects.append(PortfolioProject(
                title=repo.name,
                description=repo.description,
                url=repo.url or None,
                technologies=[repo.language] if repo.language else [],
            ))

    @staticmethod
    def _merge_linkedin(enriched: EnrichedCVData, data: LinkedInData) -> None:
        enriched.linkedin = data
        enriched.aggregated_skills.extend(data.skills)

    @staticmethod
    def _merge_web(enriched: EnrichedCVData, data: WebPresence) -> None:
        enriched.web_presence = data

    @staticmethod
    def _merge_website(enriched: EnrichedCVData, data: PersonalWebsite) -> None:
        enriched.personal_website = data
        enriched.aggregated_projects.extend(data.portfolio_projects)

    @staticmethod
    def _pick_summary(enriched: EnrichedCVData) -> Optional[str]:
        if enriched.linkedin is not None and enriched.linkedin.profile.summary:
            return enriched.linkedin.profile.summary
        if enriched.github is not None and enriched.github.profile.bio:
            return enriched.github.profile.bio
        return None


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
