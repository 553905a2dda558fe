from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..config import Settings
from ..schemas.external_data import SourceId
from .adapters import GitHubAdapter, LinkedInAdapter, WebSearchAdapter, WebsiteAdapter
from .cache import CacheService
from .enrichment import EnrichmentService
from .orchestrator import ExternalDataOrchestrator
from .resilience import RetryPolicy
from .usage import UsageTracker
from .validation import ValidationService


@dataclass
class ServiceContainer:
    """Long-lived services shared by every request."""
    cache: CacheService
    validation: ValidationService
    orchestrator: ExternalDataOrchestrator
    enrichment: EnrichmentService
    usage: UsageTracker


def build_services(
    settings: Settings,
    session_maker: async_sessionmaker,
    client: Optional[httpx.AsyncClient] = None,
) -> ServiceContainer:
    cache = CacheService(
        session_maker,
        memory_max_entries=settings.cache_memory_max_entries,
        max_size_mb=settings.cache_max_size_mb,
        default_ttl=settings.orchestration_cache_ttl_seconds,
        cleanup_interval=settings.cache_cleanup_interval_seconds,
    )
    adapter_options = {"cache": cache, "client": client, "cache_ttl": settings.adapter_cache_ttl_seconds}
    adapters = {
        SourceId.GITHUB: GitHubAdapter(settings=settings, **adapter_options),
        SourceId.LINKEDIN: LinkedInAdapter(settings=settings, **adapter_options),
        SourceId.WEB: WebSearchAdapter(settings=settings, **adapter_options),
        SourceId.WEBSITE: WebsiteAdapter(settings=settings, **adapter_options),
    }
    validation = ValidationService()
    orchestrator = ExternalDataOrchestrator(
        adapters,
        validation,
        cache,
        retry_policy=RetryPolicy(settings.retry_max_attempts, settings.retry_initial_delay_seconds),
        timeout_seconds=settings.orchestration_timeout_seconds,
        cache_ttl=settings.orchestration_cache_ttl_seconds,
    )
    return ServiceContainer(
        cache=cache,
        validation=validation,
        orchestrator=orchestrator,
        enrichment=EnrichmentService(conflict_threshold=settings.experience_conflict_threshold),
        usage=UsageTracker(session_maker),
    )


__all__ = [
    "ServiceContainer",
    "build_services",
    "CacheService",
    "ValidationService",
    "ExternalDataOrchestrator",
    "RetryPolicy",
    "EnrichmentService",
    "UsageTracker",
]
