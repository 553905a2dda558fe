"""
Skills enrichment - validates CV skills against GitHub language statistics,
repository topics and LinkedIn skills, estimates proficiency and sorts every
skill into one of five fixed categories.
"""
import logging
import re
from typing import Dict, List, Optional

from ...schemas.cv import ParsedCV
from ...schemas.enrichment import (
    CategorizedSkills,
    ProficiencyLevel,
    SkillEnrichmentResult,
    SkillWithMetadata,
    higher_proficiency,
)
from ...schemas.external_data import EnrichedCVData, GitHubData
from ...utils import normalize_key

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.4
CV_SKILL_CONFIDENCE = 0.8
LINKEDIN_SKILL_CONFIDENCE = 0.85
LINKEDIN_ROLE_SKILL_CONFIDENCE = 0.6
GITHUB_TOPIC_CONFIDENCE = 0.7
CV_PROJECT_TECH_CONFIDENCE = 0.7
EXTERNAL_PROJECT_TECH_CONFIDENCE = 0.6
ENDORSEMENTS_FOR_ADVANCED = 10

SKILL_CATEGORIES = ["technical", "soft", "languages", "tools", "frameworks"]

PROGRAMMING_LANGUAGES = [
    "javascript", "python", "java", "c++", "c#", "ruby",
    "go", "rust", "kotlin", "swift", "php", "typescript",
]
FRAMEWORKS = [
    "react", "angular", "vue", "django", "flask", "spring",
    "express", "rails", "laravel", "next", "nuxt",
]
TOOLS = [
    "docker", "kubernetes", "git", "jenkins", "aws", "azure",
    "gcp", "mongodb", "postgresql", "redis", "elasticsearch",
]
SOFT_SKILLS = [
    "leadership", "communication", "teamwork", "problem-solving",
    "analytical", "creative", "management", "agile",
]

CATEGORY_ALIASES = {
    "programming": "languages",
    "frontend": "frameworks",
    "backend": "frameworks",
    "databases": "tools",
    "cloud": "tools",
    "competencies": "soft",
}


def _word_pattern(keywords: List[str]) -> re.Pattern:
    # Whole-word match that also works for keywords ending in symbols (c++, c#)
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"(?<![a-z0-9])(?:{alternatives})(?![a-z0-9])")


_LANGUAGE_PATTERN = _word_pattern(PROGRAMMING_LANGUAGES)
_FRAMEWORK_PATTERN = _word_pattern(FRAMEWORKS)
_TOOL_PATTERN = _word_pattern(TOOLS)
_SOFT_PATTERN = _word_pattern(SOFT_SKILLS)


def categorize_skill(skill: str) -> str:
    lower = skill.lower()
    if _LANGUAGE_PATTERN.search(lower):
        return "languages"
    if _FRAMEWORK_PATTERN.search(lower):
        return "frameworks"
    if _TOOL_PATTERN.search(lower):
        return "tools"
    if _SOFT_PATTERN.search(lower):
        return "soft"
    return "technical"


def is_framework_or_tool(topic: str) -> bool:
    lower = topic.lower()
    return bool(_FRAMEWORK_PATTERN.search(lower) or _TOOL_PATTERN.search(lower))


def map_to_standard_category(category: str) -> str:
    category = CATEGORY_ALIASES.get(category.lower(), category.lower())
    return category if category in SKILL_CATEGORIES else "technical"


def format_skill_name(name: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in name.split("-"))


def proficiency_from_usage(percentage: float) -> ProficiencyLevel:
    if percentage > 40:
        return ProficiencyLevel.EXPERT
    if percentage > 20:
        return ProficiencyLevel.ADVANCED
    if percentage > 10:
        return ProficiencyLevel.INTERMEDIATE
    return ProficiencyLevel.BEGINNER


def skill_key(name: str) -> str:
    return normalize_key(name)


def merge_skill(existing: SkillWithMetadata, additional: SkillWithMetadata) -> SkillWithMetadata:
    """Union sources, keep the max confidence/endorsements and the higher proficiency."""
    endorsements = max(existing.endorsements or 0, additional.endorsements or 0)
    return existing.model_copy(update={
        "validated": existing.validated or additional.validated,
        "endorsements": endorsements or None,
        "sources": list(dict.fromkeys(existing.sources + additional.sources)),
        "confidence": max(existing.confidence, additional.confidence),
        "proficiency": higher_proficiency(existing.proficiency, additional.proficiency),
    })


class SkillsEnrichmentService:
    def enrich_skills(self, cv: ParsedCV, external_data: EnrichedCVData) -> SkillEnrichmentResult:
        logger.info("[ENRICHMENT] Starting skills enrichment")

        existing = self.extract_existing_skills(cv)
        merged = self.merge_skills(
            existing,
            self.extract_github_skills(external_data.github),
            self.extract_linkedin_skills(external_data),
            self.extract_project_skills(cv, external_data),
        )
        existing_keys = {skill_key(s.name) for s in existing}
        validated = sum(1 for s in merged if s.validated)

        result = SkillEnrichmentResult(
            enriched_skills=self.organize_by_category(merged),
            new_skills_added=sum(1 for s in merged if skill_key(s.name) not in existing_keys),
            skills_validated=validated,
            proficiency_levels=self.calculate_proficiency_levels(merged),
            quality_score=self.calculate_quality_score(merged),
        )
        logger.info(
            f"[ENRICHMENT] Skills: {result.new_skills_added} new, "
            f"{result.skills_validated} validated"
        )
        return result

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    @staticmethod
    def extract_existing_skills(cv: ParsedCV) -> List[SkillWithMetadata]:
        if isinstance(cv.skills, dict):
            pairs = [
                (skill, map_to_standard_category(category))
                for category, names in cv.skills.items()
                for skill in names
            ]
        else:
            pairs = [(skill, categorize_skill(skill)) for skill in cv.skills]

        return [
            SkillWithMetadata(
                name=name,
                category=category,
                sources=["cv"],
                confidence=CV_SKILL_CONFIDENCE,
            )
            for name, category in pairs
            if name and name.strip()
        ]

    @staticmethod
    def extract_github_skills(github: Optional[GitHubData]) -> List[SkillWithMetadata]:
        if github is None:
            return []

        skills = []
        total_bytes = sum(github.stats.languages.values())
        for language, size in github.stats.languages.items():
            share = size / total_bytes if total_bytes else 0
            skills.append(SkillWithMetadata(
                name=language,
                category="languages",
                proficiency=proficiency_from_usage(share * 100),
                validated=True,
                sources=["github"],
                confidence=min(0.5 + share, 1.0),
            ))

        for repo in github.repositories:
            for topic in repo.topics:
                if is_framework_or_tool(topic):
                    skills.append(SkillWithMetadata(
                        name=format_skill_name(topic),
                        category=categorize_skill(topic),
                        validated=True,
                        sources=["github"],
                        confidence=GITHUB_TOPIC_CONFIDENCE,
                    ))
        return skills

    @staticmethod
    def extract_linkedin_skills(external_data: EnrichedCVData) -> List[SkillWithMetadata]:
        linkedin = external_data.linkedin
        if linkedin is None:
            return []

        skills = [
            SkillWithMetadata(
                name=skill,
                category=categorize_skill(skill),
                validated=True,
                endorsements=linkedin.endorsements or None,
                sources=["linkedin"],
                confidence=LINKEDIN_SKILL_CONFIDENCE,
            )
            for skill in linkedin.skills
        ]
        for exp in linkedin.experience:
            for skill in exp.skills:
                skills.append(SkillWithMetadata(
                    name=skill,
                    category=categorize_skill(skill),
                    validated=False,
                    sources=["linkedin-experience"],
                    confidence=LINKEDIN_ROLE_SKILL_CONFIDENCE,
                ))
        return skills

    @staticmethod
    def extract_project_skills(cv: ParsedCV, external_data: EnrichedCVData) -> List[SkillWithMetadata]:
        skills = []
        for project in cv.projects:
            for tech in project.technologies:
                skills.append(SkillWithMetadata(
                    name=tech,
                    category=categorize_skill(tech),
                    sources=["cv-projects"],
                    confidence=CV_PROJECT_TECH_CONFIDENCE,
                ))
        for project in external_data.aggregated_projects:
            for tech in project.technologies:
                skills.append(SkillWithMetadata(
                    name=tech,
                    category=categorize_skill(tech),
                    sources=["external-projects"],
                    confidence=EXTERNAL_PROJECT_TECH_CONFIDENCE,
                ))
        return skills

    # ------------------------------------------------------------------
    # Merge & scoring
    # ------------------------------------------------------------------

    @staticmethod
    def merge_skills(*groups: List[SkillWithMetadata]) -> List[SkillWithMetadata]:
        merged: Dict[str, SkillWithMetadata] = {}
        for group in groups:
            for skill in group:
                key = skill_key(skill.name)
                if not key:
                    continue
                current = merged.get(key)
                merged[key] = merge_skill(current, skill) if current is not None else skill

        kept = [s for s in merged.values() if s.confidence > MIN_CONFIDENCE]
        return sorted(kept, key=lambda s: s.confidence, reverse=True)

    @staticmethod
    def calculate_proficiency_levels(skills: List[SkillWithMetadata]) -> Dict[str, ProficiencyLevel]:
        levels = {}
        for skill in skills:
            source_count = len(skill.sources)
            if skill.validated and source_count > 2:
                level = ProficiencyLevel.EXPERT
            elif skill.validated and source_count > 1:
                level = ProficiencyLevel.ADVANCED
            elif skill.validated or source_count > 1:
                level = ProficiencyLevel.INTERMEDIATE
            else:
                level = ProficiencyLevel.BEGINNER

            if (skill.endorsements or 0) > ENDORSEMENTS_FOR_ADVANCED:
                level = higher_proficiency(level, ProficiencyLevel.ADVANCED)
            levels[skill.name] = level
        return levels

    @staticmethod
    def organize_by_category(skills: List[SkillWithMetadata]) -> CategorizedSkills:
        organized = CategorizedSkills()
        for skill in skills:
            getattr(organized, map_to_standard_category(skill.category)).append(skill)
        for category in SKILL_CATEGORIES:
            getattr(organized, category).sort(key=lambda s: s.confidence, reverse=True)
        return organized

    @staticmethod
    def calculate_quality_score(skills: List[SkillWithMetadata]) -> int:
        if not skills:
            return 0
        validated_ratio = sum(1 for s in skills if s.validated) / len(skills)
        avg_sources = sum(len(s.sources) for s in skills) / len(skills)
        avg_confidence = sum(s.confidence for s in skills) / len(skills)
        score = round(validated_ratio * 40 + avg_sources * 20 + avg_confidence * 40)
        return min(100, score)
