"""
External data API

Enriches a CV with data fetched from GitHub, LinkedIn, web search and the
candidate's personal website, and exposes the source registry and cache
maintenance endpoints.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request

from ..schemas.external_data import (
    CacheStats,
    ExternalDataSource,
    OrchestrationOptions,
    OrchestrationRequest,
    OrchestrationResult,
    SourceId,
    UserHints,
)
from ..schemas.requests import EnrichCVResponse, EnrichMetrics, EnrichRequest, EnrichResponse
from ..services import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/external-data", tags=["External Data"])

VALID_SOURCES = [s.value for s in SourceId]


def get_services(request: Request) -> ServiceContainer:
    """Services built once in the app lifespan."""
    return request.app.state.services


def _validate_request(body: EnrichRequest) -> List[str]:
    if not body.cv_id:
        raise HTTPException(status_code=400, detail="CV ID is required")

    sources = body.sources or list(VALID_SOURCES)
    invalid = [s for s in sources if s not in VALID_SOURCES]
    if invalid:
        raise HTTPException(status_code=400, detail=f"Invalid sources: {', '.join(invalid)}")
    return sources


def _to_response(result: OrchestrationResult) -> EnrichResponse:
    return EnrichResponse(
        success=result.status != "failed",
        request_id=result.request_id,
        status=result.status,
        enriched_data=result.enriched_data,
        metrics=EnrichMetrics(
            fetch_duration=result.fetch_duration,
            sources_queried=result.sources_queried,
            sources_successful=result.sources_successful,
            cache_hits=result.cache_hits,
        ),
        errors=result.errors,
    )


async def _orchestrate(body: EnrichRequest, sources: List[str], services: ServiceContainer) -> OrchestrationResult:
    hints = UserHints(github=body.github, linkedin=body.linkedin, website=body.website, name=body.name)
    if body.github or body.linkedin or body.website:
        await services.usage.store_hints(body.user_id, hints)

    # Hints saved by earlier requests fill whatever this one leaves out
    stored = await services.usage.get_hints(body.user_id)
    if stored is not None:
        hints = UserHints(**{**stored.model_dump(exclude_none=True), **hints.model_dump(exclude_none=True)})

    request = OrchestrationRequest(
        user_id=body.user_id,
        cv_id=body.cv_id,
        cv_data=body.cv_data,
        data_types=sources,
        priority=body.options.priority,
        hints=hints,
        options=OrchestrationOptions(
            force_refresh=body.options.force_refresh,
            timeout=body.options.timeout,
        ),
    )

    logger.info(f"[ENRICH-CV] Enrichment requested: user={body.user_id}, cv={body.cv_id}, sources={sources}")
    try:
        result = await services.orchestrator.orchestrate(request)
    except Exception as e:
        logger.error(f"[ENRICH-CV] Orchestration failed for user {body.user_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to enrich CV: {str(e)[:100]}")

    services.usage.track_in_background(body.user_id, body.cv_id, sources, result)
    logger.info(
        f"[ENRICH-CV] Completed {result.request_id}: status={result.status}, "
        f"{result.sources_successful}/{result.sources_queried} sources, {result.fetch_duration}ms"
    )
    return result


@router.post("/enrich", response_model=EnrichResponse)
async def enrich(body: EnrichRequest, services: ServiceContainer = Depends(get_services)):
    """Fetch, merge and validate external data for a CV."""
    sources = _validate_request(body)
    result = await _orchestrate(body, sources, services)
    return _to_response(result)


@router.post("/enrich-cv", response_model=EnrichCVResponse)
async def enrich_cv(body: EnrichRequest, services: ServiceContainer = Depends(get_services)):
    """
    Fetch external data and apply it to the submitted CV.

    Returns the orchestration outcome, the enriched CV with attribution and
    a plain-text report of what changed.
    """
    sources = _validate_request(body)
    if body.cv_data is None:
        raise HTTPException(status_code=400, detail="CV data is required")

    result = await _orchestrate(body, sources, services)
    enrichment = services.enrichment.enrich_cv(body.cv_data, result.enriched_data)
    return EnrichCVResponse(
        orchestration=_to_response(result),
        enrichment=enrichment,
        report=services.enrichment.generate_enrichment_report(enrichment),
    )


@router.get("/sources", response_model=List[ExternalDataSource])
async def list_sources(services: ServiceContainer = Depends(get_services)):
    return services.orchestrator.list_sources()


@router.get("/cache/stats", response_model=CacheStats)
async def cache_stats(services: ServiceContainer = Depends(get_services)):
    return await services.cache.get_stats()


@router.delete("/cache/users/{user_id}")
async def clear_user_cache(user_id: str, services: ServiceContainer = Depends(get_services)):
    cleared = await services.cache.clear_user_cache(user_id)
    return {"user_id": user_id, "cleared": cleared}
