"""
External data schemas: source registry, per-source payloads, the aggregate
built by the orchestrator, validation status and cache entries.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field

from .cv import ParsedCV


# ============================================================================
# Source Registry
# ============================================================================

class SourceId(str, Enum):
    GITHUB = "github"
    LINKEDIN = "linkedin"
    WEB = "web"
    WEBSITE = "website"


class RateLimit(BaseModel):
    max_requests: int
    window_seconds: int


class ExternalDataSource(BaseModel):
    id: SourceId
    name: str
    type: SourceId
    priority: int  # lower = fetched first
    enabled: bool = True
    rate_limit: Optional[RateLimit] = None


# ============================================================================
# GitHub
# ============================================================================

class GitHubProfile(BaseModel):
    username: str = ""
    name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    company: Optional[str] = None
    blog: Optional[str] = None
    email: Optional[str] = None
    followers: int = 0
    following: int = 0
    public_repos: int = 0
    public_gists: int = 0
    created_at: Optional[str] = None
    avatar_url: Optional[str] = None


class GitHubRepository(BaseModel):
    name: str
    description: Optional[str] = None
    url: str = ""
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    watchers: int = 0
    is_private: bool = False
    is_fork: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    topics: List[str] = Field(default_factory=list)


class GitHubStats(BaseModel):
    total_stars: int = 0
    total_forks: int = 0
    total_contributions: int = 0
    languages: Dict[str, int] = Field(default_factory=dict)  # language -> bytes
    top_repositories: List[GitHubRepository] = Field(default_factory=list)
    contribution_streak: int = 0


class GitHubData(BaseModel):
    profile: GitHubProfile = Field(default_factory=GitHubProfile)
    stats: GitHubStats = Field(default_factory=GitHubStats)
    repositories: List[GitHubRepository] = Field(default_factory=list)


# ============================================================================
# LinkedIn
# ============================================================================

class LinkedInProfile(BaseModel):
    profile_url: Optional[str] = None
    headline: Optional[str] = None
    summary: Optional[str] = None
    location: Optional[str] = None
    industry: Optional[str] = None
    connections: Optional[int] = None


class LinkedInExperience(BaseModel):
    title: str
    company: str
    location: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    description: Optional[str] = None
    skills: List[str] = Field(default_factory=list)


class LinkedInEducation(BaseModel):
    school: str
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    grade: Optional[str] = None
    activities: List[str] = Field(default_factory=list)


class LinkedInCertification(BaseModel):
    name: str
    issuing_organization: str = ""
    issue_date: Optional[str] = None
    expiration_date: Optional[str] = None
    credential_id: Optional[str] = None
    credential_url: Optional[str] = None


class LinkedInData(BaseModel):
    profile: LinkedInProfile = Field(default_factory=LinkedInProfile)
    experience: List[LinkedInExperience] = Field(default_factory=list)
    education: List[LinkedInEducation] = Field(default_factory=list)
    certifications: List[LinkedInCertification] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    endorsements: int = 0


# ============================================================================
# Web Search
# ============================================================================

class WebSearchResult(BaseModel):
    title: str
    url: str
    snippet: str = ""
    source: str = ""
    relevance_score: float = 0
    published_date: Optional[str] = None


class WebPublication(BaseModel):
    title: str
    url: Optional[str] = None
    publisher: Optional[str] = None
    date: Optional[str] = None
    authors: List[str] = Field(default_factory=list)
    type: Literal["article", "paper", "book", "blog", "other"] = "other"


class SpeakingEngagement(BaseModel):
    event: str
    title: Optional[str] = None
    date: Optional[str] = None
    location: Optional[str] = None
    url: Optional[str] = None


class Award(BaseModel):
    title: str
    organization: str = ""
    date: Optional[str] = None
    description: Optional[str] = None


class WebPresence(BaseModel):
    search_results: List[WebSearchResult] = Field(default_factory=list)
    publications: List[WebPublication] = Field(default_factory=list)
    speaking_engagements: List[SpeakingEngagement] = Field(default_factory=list)
    awards: List[Award] = Field(default_factory=list)
    mentions: int = 0


# ============================================================================
# Personal Website
# ============================================================================

class PortfolioProject(BaseModel):
    title: str
    description: Optional[str] = None
    url: Optional[str] = None
    image_url: Optional[str] = None
    technologies: List[str] = Field(default_factory=list)
    role: Optional[str] = None
    duration: Optional[str] = None


class BlogPost(BaseModel):
    title: str
    url: str = ""
    excerpt: Optional[str] = None
    published_date: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    read_time: Optional[int] = None


class Testimonial(BaseModel):
    author: str
    role: Optional[str] = None
    company: Optional[str] = None
    text: str
    date: Optional[str] = None
    rating: Optional[float] = None


class PersonalWebsite(BaseModel):
    url: str
    title: Optional[str] = None
    description: Optional[str] = None
    last_updated: Optional[str] = None
    portfolio_projects: List[PortfolioProject] = Field(default_factory=list)
    blog_posts: List[BlogPost] = Field(default_factory=list)
    testimonials: List[Testimonial] = Field(default_factory=list)


# Payload produced by one adapter, keyed by SourceId
SourcePayload = Union[GitHubData, LinkedInData, WebPresence, PersonalWebsite]

SOURCE_SCHEMAS = {
    SourceId.GITHUB: GitHubData,
    SourceId.LINKEDIN: LinkedInData,
    SourceId.WEB: WebPresence,
    SourceId.WEBSITE: PersonalWebsite,
}


# ============================================================================
# Validation
# ============================================================================

class ValidationIssue(BaseModel):
    field: str
    issue: str
    severity: Literal["error", "warning", "info"]


class ValidationStatus(BaseModel):
    is_valid: bool = True
    has_personal_info: bool = False
    has_sensitive_data: bool = False
    quality_score: int = 0
    issues: List[ValidationIssue] = Field(default_factory=list)


# ============================================================================
# Aggregate
# ============================================================================

class DataSourceResult(BaseModel):
    source: SourceId
    success: bool
    fetched_at: datetime
    data_points: int = 0
    error: Optional[str] = None


class EnrichedCVData(BaseModel):
    """Merged result of all adapter fetches for one request."""
    original_cv_id: Optional[str] = None
    user_id: str
    fetched_at: datetime
    sources: List[DataSourceResult] = Field(default_factory=list)
    github: Optional[GitHubData] = None
    linkedin: Optional[LinkedInData] = None
    web_presence: Optional[WebPresence] = None
    personal_website: Optional[PersonalWebsite] = None
    aggregated_skills: List[str] = Field(default_factory=list)
    aggregated_projects: List[PortfolioProject] = Field(default_factory=list)
    professional_summary: Optional[str] = None
    validation_status: Optional[ValidationStatus] = None


# ============================================================================
# Cache
# ============================================================================

class CacheEntry(BaseModel):
    key: str
    data: Any = None
    created_at: datetime
    expires_at: datetime
    source: str = "external_data"
    hits: int = 0


class CacheStats(BaseModel):
    memory_entries: int = 0
    persistent_entries: int = 0
    total_size: int = 0  # bytes held by the in-process tier
    hit_rate: float = 0


# ============================================================================
# Orchestration
# ============================================================================

class UserHints(BaseModel):
    """Explicit identifiers for each source; override what the CV says."""
    github: Optional[str] = None
    linkedin: Optional[str] = None
    website: Optional[str] = None
    name: Optional[str] = None


class OrchestrationOptions(BaseModel):
    force_refresh: bool = False
    timeout: Optional[float] = None  # seconds


class OrchestrationRequest(BaseModel):
    user_id: str
    cv_data: Optional[ParsedCV] = None
    cv_id: Optional[str] = None
    data_types: List[str] = Field(default_factory=list)
    priority: Literal["low", "medium", "high"] = "medium"
    max_cost: Optional[float] = None
    hints: UserHints = Field(default_factory=UserHints)
    options: OrchestrationOptions = Field(default_factory=OrchestrationOptions)

    class Config:
        frozen = True


class OrchestrationResult(BaseModel):
    request_id: str
    status: Literal["success", "partial", "failed"]
    enriched_data: EnrichedCVData
    fetch_duration: int  # milliseconds
    sources_queried: int
    sources_successful: int
    cache_hits: int
    errors: List[str] = Field(default_factory=list)
