"""
Request/response bodies for the external data API.
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from .cv import ParsedCV
from .enrichment import EnrichmentResult
from .external_data import EnrichedCVData


class EnrichOptions(BaseModel):
    force_refresh: bool = False
    timeout: Optional[float] = None  # seconds
    priority: Literal["low", "medium", "high"] = "medium"


class EnrichRequest(BaseModel):
    user_id: str
    cv_id: Optional[str] = None
    cv_data: Optional[ParsedCV] = None
    sources: Optional[List[str]] = None
    options: EnrichOptions = Field(default_factory=EnrichOptions)

    # Optional user-provided hints
    github: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None
    name: Optional[str] = None


class EnrichMetrics(BaseModel):
    fetch_duration: int
    sources_queried: int
    sources_successful: int
    cache_hits: int


class EnrichResponse(BaseModel):
    success: bool
    request_id: str
    status: str
    enriched_data: EnrichedCVData
    metrics: EnrichMetrics
    errors: List[str] = Field(default_factory=list)


class EnrichCVResponse(BaseModel):
    orchestration: EnrichResponse
    enrichment: EnrichmentResult
    report: str
