"""
Enrichment schemas: per-section records produced by the enrichment modules
and the combined result returned to the caller.
"""
from datetime import datetime
from enum import Enum
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field

from .cv import ParsedCV


RecordSource = Literal["cv", "github", "website", "linkedin", "web", "npm"]


# ============================================================================
# Portfolio
# ============================================================================

class ProjectMetrics(BaseModel):
    stars: Optional[int] = None
    forks: Optional[int] = None
    contributors: Optional[int] = None
    downloads: Optional[int] = None
    last_updated: Optional[str] = None


class PortfolioProjectRecord(BaseModel):
    name: str
    description: str = ""
    technologies: List[str] = Field(default_factory=list)
    url: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    source: RecordSource
    metrics: ProjectMetrics = Field(default_factory=ProjectMetrics)
    confidence: float


class PortfolioEnrichmentResult(BaseModel):
    enriched_projects: List[PortfolioProjectRecord] = Field(default_factory=list)
    new_projects_added: int = 0
    projects_enhanced: int = 0
    quality_score: int = 0


# ============================================================================
# Certifications
# ============================================================================

class CertificationRecord(BaseModel):
    name: str
    issuer: str = ""
    date: str = ""
    credential_id: Optional[str] = None
    credential_url: Optional[str] = None
    expiration_date: Optional[str] = None
    certificate_image: Optional[str] = None
    source: RecordSource
    verified: bool = False
    confidence: float


class CertificationEnrichmentResult(BaseModel):
    enriched_certifications: List[CertificationRecord] = Field(default_factory=list)
    new_certifications_added: int = 0
    certifications_verified: int = 0
    quality_score: int = 0


# ============================================================================
# Hobbies / Interests
# ============================================================================

InterestCategory = Literal["technical", "creative", "community", "personal", "professional"]


class InterestRecord(BaseModel):
    category: InterestCategory
    interest: str
    evidence: List[str] = Field(default_factory=list)
    source: RecordSource
    confidence: float


class CategorizedInterests(BaseModel):
    technical: List[str] = Field(default_factory=list)
    creative: List[str] = Field(default_factory=list)
    community: List[str] = Field(default_factory=list)
    professional: List[str] = Field(default_factory=list)
    personal: List[str] = Field(default_factory=list)


class HobbiesEnrichmentResult(BaseModel):
    enriched_interests: List[InterestRecord] = Field(default_factory=list)
    categorized_interests: CategorizedInterests = Field(default_factory=CategorizedInterests)
    new_interests_added: int = 0
    quality_score: int = 0


# ============================================================================
# Skills
# ============================================================================

class ProficiencyLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return _PROFICIENCY_ORDER.index(self)


_PROFICIENCY_ORDER = [
    ProficiencyLevel.BEGINNER,
    ProficiencyLevel.INTERMEDIATE,
    ProficiencyLevel.ADVANCED,
    ProficiencyLevel.EXPERT,
]


def higher_proficiency(a: ProficiencyLevel, b: ProficiencyLevel) -> ProficiencyLevel:
    return a if a.rank >= b.rank else b


SkillCategory = Literal["technical", "soft", "languages", "tools", "frameworks"]


class SkillWithMetadata(BaseModel):
    name: str
    category: str
    proficiency: ProficiencyLevel = ProficiencyLevel.INTERMEDIATE
    validated: bool = False
    endorsements: Optional[int] = None
    years_of_experience: Optional[float] = None
    last_used: Optional[str] = None
    sources: List[str] = Field(default_factory=list)
    confidence: float


class CategorizedSkills(BaseModel):
    technical: List[SkillWithMetadata] = Field(default_factory=list)
    soft: List[SkillWithMetadata] = Field(default_factory=list)
    languages: List[SkillWithMetadata] = Field(default_factory=list)
    tools: List[SkillWithMetadata] = Field(default_factory=list)
    frameworks: List[SkillWithMetadata] = Field(default_factory=list)


class SkillEnrichmentResult(BaseModel):
    enriched_skills: CategorizedSkills = Field(default_factory=CategorizedSkills)
    new_skills_added: int = 0
    skills_validated: int = 0
    proficiency_levels: Dict[str, ProficiencyLevel] = Field(default_factory=dict)
    quality_score: int = 0


# ============================================================================
# Combined Result
# ============================================================================

class DataAttribution(BaseModel):
    field: str
    source: str
    confidence: float
    added: bool
    enhanced: bool


class ConflictResolution(BaseModel):
    field: str
    sources: List[str]
    resolution: str
    reason: str


class QualityImprovement(BaseModel):
    before: int
    after: int
    improvement: int


class EnrichmentSummary(BaseModel):
    portfolio: PortfolioEnrichmentResult
    certifications: CertificationEnrichmentResult
    hobbies: HobbiesEnrichmentResult
    skills: SkillEnrichmentResult


class EnrichmentResult(BaseModel):
    enriched_cv: ParsedCV
    enrichment_summary: EnrichmentSummary
    data_attribution: List[DataAttribution] = Field(default_factory=list)
    quality_improvement: QualityImprovement
    conflicts_resolved: List[ConflictResolution] = Field(default_factory=list)
    timestamp: datetime
