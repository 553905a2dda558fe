"""
CV Enrichment Orchestrator

Runs the four section enrichers (portfolio, certifications, hobbies, skills)
over a deep copy of the CV, applies their output, records attribution for
every field that changed and guards the experience section against
over-aggressive merging.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from ...schemas.cv import CertificationEntry, ParsedCV, ProjectEntry
from ...schemas.enrichment import (
    CertificationEnrichmentResult,
    ConflictResolution,
    DataAttribution,
    EnrichmentResult,
    EnrichmentSummary,
    HobbiesEnrichmentResult,
    PortfolioEnrichmentResult,
    QualityImprovement,
    SkillEnrichmentResult,
)
from ...schemas.external_data import EnrichedCVData
from .certification import CertificationEnrichmentService
from .hobbies import HobbiesEnrichmentService
from .portfolio import PortfolioEnrichmentService
from .skills import SkillsEnrichmentService

logger = logging.getLogger(__name__)

MAX_INTERESTS = 8
SHORT_SUMMARY_LENGTH = 50
CATEGORIZE_AFTER_NEW_SKILLS = 5
TECHNICAL_SKILL_CATEGORIES = ["technical", "frameworks", "tools", "languages"]

QUALITY_WEIGHTS = {
    "personal_info": 10,
    "summary": 15,
    "experience": 25,
    "education": 10,
    "skills": 15,
    "projects": 10,
    "certifications": 5,
    "achievements": 5,
    "interests": 5,
}


def calculate_cv_quality_score(cv: ParsedCV) -> int:
    """Weighted 0-100 completeness score for a CV."""
    w = QUALITY_WEIGHTS
    score = 0.0

    if cv.personal_info.name:
        score += w["personal_info"] * 0.3
    if cv.personal_info.email:
        score += w["personal_info"] * 0.3
    if cv.personal_info.title:
        score += w["personal_info"] * 0.4

    summary_length = len(cv.summary or "")
    if summary_length > 100:
        score += w["summary"]
    elif summary_length > 50:
        score += w["summary"] * 0.5

    if cv.experience:
        avg_description = sum(len(e.description or "") for e in cv.experience) / len(cv.experience)
        if avg_description > 100:
            score += w["experience"]
        elif avg_description > 50:
            score += w["experience"] * 0.6
        else:
            score += w["experience"] * 0.3

    if cv.education:
        score += w["education"]

    if isinstance(cv.skills, dict):
        skill_count = sum(len(names) for names in cv.skills.values())
    else:
        skill_count = len(cv.skills)
    if skill_count > 10:
        score += w["skills"]
    elif skill_count > 5:
        score += w["skills"] * 0.6
    elif skill_count > 0:
        score += w["skills"] * 0.3

    if len(cv.projects) > 2:
        score += w["projects"]
    elif cv.projects:
        score += w["projects"] * 0.5

    if cv.certifications:
        score += w["certifications"]

    if len(cv.achievements) > 2:
        score += w["achievements"]
    elif cv.achievements:
        score += w["achievements"] * 0.5

    if len(cv.interests) > 3:
        score += w["interests"]
    elif cv.interests:
        score += w["interests"] * 0.5

    return round(score)


class EnrichmentService:
    def __init__(
        self,
        portfolio: Optional[PortfolioEnrichmentService] = None,
        certifications: Optional[CertificationEnrichmentService] = None,
        hobbies: Optional[HobbiesEnrichmentService] = None,
        skills: Optional[SkillsEnrichmentService] = None,
        conflict_threshold: int = 2,
    ):
        self.portfolio = portfolio or PortfolioEnrichmentService()
        self.certifications = certifications or CertificationEnrichmentService()
        self.hobbies = hobbies or HobbiesEnrichmentService()
        self.skills = skills or SkillsEnrichmentService()
        self.conflict_threshold = conflict_threshold

    def enrich_cv(self, original_cv: ParsedCV, external_data: EnrichedCVData) -> EnrichmentResult:
        """Enrich a copy of ``original_cv``; the caller's CV is never mutated."""
        logger.info("[ENRICHMENT] Starting CV enrichment")
        before = calculate_cv_quality_score(original_cv)

        cv = original_cv.model_copy(deep=True)
        attributions: List[DataAttribution] = []
        conflicts: List[ConflictResolution] = []

        portfolio = self.portfolio.enrich_portfolio(cv, external_data)
        self.apply_portfolio(cv, portfolio, attributions)

        certifications = self.certifications.enrich_certifications(cv, external_data)
        self.apply_certifications(cv, certifications, attributions)

        hobbies = self.hobbies.enrich_hobbies(cv, external_data)
        self.apply_hobbies(cv, hobbies, attributions)

        skills = self.skills.enrich_skills(cv, external_data)
        self.apply_skills(cv, skills, attributions)

        if external_data.professional_summary:
            self.apply_summary(cv, external_data.professional_summary, attributions)

        self.resolve_conflicts(cv, original_cv, conflicts)

        after = calculate_cv_quality_score(cv)
        result = EnrichmentResult(
            enriched_cv=cv,
            enrichment_summary=EnrichmentSummary(
                portfolio=portfolio,
                certifications=certifications,
                hobbies=hobbies,
                skills=skills,
            ),
            data_attribution=attributions,
            quality_improvement=QualityImprovement(before=before, after=after, improvement=after - before),
            conflicts_resolved=conflicts,
            timestamp=datetime.now(timezone.utc),
        )
        logger.info(f"[ENRICHMENT] CV enrichment complete, quality {before} -> {after}")
        return result

    # ------------------------------------------------------------------
    # Apply module output
    # ------------------------------------------------------------------

    @staticmethod
    def apply_portfolio(cv: ParsedCV, result: PortfolioEnrichmentResult, attributions: List[DataAttribution]) -> None:
        cv.projects = [
            ProjectEntry(
                name=p.name,
                description=p.description or None,
                technologies=p.technologies,
                url=p.url,
                images=p.images,
            )
            for p in result.enriched_projects
        ]
        if result.new_projects_added > 0:
            attributions.append(DataAttribution(
                field="projects", source="github/website", confidence=0.8, added=True, enhanced=False,
            ))
        if result.projects_enhanced > 0:
            attributions.append(DataAttribution(
                field="projects", source="github/website", confidence=0.9, added=False, enhanced=True,
            ))

    @staticmethod
    def apply_certifications(
        cv: ParsedCV, result: CertificationEnrichmentResult, attributions: List[DataAttribution]
    ) -> None:
        cv.certifications = [
            CertificationEntry(
                name=c.name,
                issuer=c.issuer or None,
                date=c.date or None,
                credential_id=c.credential_id,
                credential_url=c.credential_url,
                expiration_date=c.expiration_date,
                certificate_image=c.certificate_image,
            )
            for c in result.enriched_certifications
        ]
        if result.new_certifications_added > 0:
            attributions.append(DataAttribution(
                field="certifications", source="linkedin/web", confidence=0.85, added=True, enhanced=False,
            ))
        if result.certifications_verified > 0:
            attributions.append(DataAttribution(
                field="certifications", source="linkedin", confidence=0.95, added=False, enhanced=True,
            ))

    @staticmethod
    def apply_hobbies(cv: ParsedCV, result: HobbiesEnrichmentResult, attributions: List[DataAttribution]) -> None:
        categorized = result.categorized_interests
        interests = (
            categorized.technical
            + categorized.creative
            + categorized.community
            + categorized.professional
            + categorized.personal
        )
        cv.interests = list(dict.fromkeys(interests))[:MAX_INTERESTS]
        if result.new_interests_added > 0:
            attributions.append(DataAttribution(
                field="interests", source="github/web", confidence=0.7, added=True, enhanced=False,
            ))

    @staticmethod
    def apply_skills(cv: ParsedCV, result: SkillEnrichmentResult, attributions: List[DataAttribution]) -> None:
        enriched = result.enriched_skills
        by_category = {
            category: [s.name for s in getattr(enriched, category)]
            for category in TECHNICAL_SKILL_CATEGORIES
        }

        if isinstance(cv.skills, dict):
            cv.skills = {**cv.skills, **by_category}
        elif result.new_skills_added > CATEGORIZE_AFTER_NEW_SKILLS:
            cv.skills = by_category
        else:
            validated = [
                s.name
                for category in TECHNICAL_SKILL_CATEGORIES
                for s in getattr(enriched, category)
                if s.validated
            ]
            cv.skills = list(dict.fromkeys(cv.skills + validated))

        if result.new_skills_added > 0:
            attributions.append(DataAttribution(
                field="skills", source="github/linkedin", confidence=0.85, added=True, enhanced=False,
            ))
        if result.skills_validated > 0:
            attributions.append(DataAttribution(
                field="skills", source="github/linkedin", confidence=0.9, added=False, enhanced=True,
            ))

    @staticmethod
    def apply_summary(cv: ParsedCV, summary: str, attributions: List[DataAttribution]) -> None:
        if cv.summary and len(cv.summary) >= SHORT_SUMMARY_LENGTH:
            return
        cv.summary = summary
        attributions.append(DataAttribution(
            field="summary", source="ai-generated", confidence=0.8, added=True, enhanced=False,
        ))

    def resolve_conflicts(
        self, enriched_cv: ParsedCV, original_cv: ParsedCV, conflicts: List[ConflictResolution]
    ) -> None:
        """Restore the original experience section when the entry count moved too far."""
        delta = abs(len(enriched_cv.experience) - len(original_cv.experience))
        if delta <= self.conflict_threshold:
            return

        logger.warning(
            f"[ENRICHMENT] Experience changed by {delta} entries, keeping the original section"
        )
        conflicts.append(ConflictResolution(
            field="experience",
            sources=["cv", "external"],
            resolution="kept original",
            reason="significant discrepancy detected",
        ))
        enriched_cv.experience = [e.model_copy(deep=True) for e in original_cv.experience]

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @staticmethod
    def generate_enrichment_report(result: EnrichmentResult) -> str:
        summary = result.enrichment_summary
        quality = result.quality_improvement
        sources = list(dict.fromkeys(f"  - {a.source}" for a in result.data_attribution))

        lines = [
            "=== CV Enrichment Report ===",
            f"Generated: {result.timestamp.isoformat()}",
            "",
            "Quality Improvement:",
            f"  Before: {quality.before}%",
            f"  After: {quality.after}%",
            f"  Improvement: {quality.improvement:+d}%",
            "",
            "Portfolio Enhancement:",
            f"  New Projects: {summary.portfolio.new_projects_added}",
            f"  Enhanced Projects: {summary.portfolio.projects_enhanced}",
            f"  Quality Score: {summary.portfolio.quality_score}%",
            "",
            "Certification Enhancement:",
            f"  New Certifications: {summary.certifications.new_certifications_added}",
            f"  Verified: {summary.certifications.certifications_verified}",
            f"  Quality Score: {summary.certifications.quality_score}%",
            "",
            "Skills Enhancement:",
            f"  New Skills: {summary.skills.new_skills_added}",
            f"  Validated: {summary.skills.skills_validated}",
            f"  Quality Score: {summary.skills.quality_score}%",
            "",
            "Interests Enhancement:",
            f"  New Interests: {summary.hobbies.new_interests_added}",
            f"  Quality Score: {summary.hobbies.quality_score}%",
            "",
            "Data Sources Used:",
            *sources,
            "",
            f"Total Enhancements: {len(result.data_attribution)}",
        ]
        return "\n".join(lines)
