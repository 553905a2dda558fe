"""
Portfolio enrichment - merges CV projects with public GitHub repositories
and projects scraped from the candidate's website.
"""
import logging
import math
from typing import Dict, List, Optional

from ...schemas.cv import ParsedCV
from ...schemas.enrichment import (
    PortfolioEnrichmentResult,
    PortfolioProjectRecord,
    ProjectMetrics,
)
from ...schemas.external_data import EnrichedCVData, GitHubRepository, PortfolioProject
from ...utils import normalize_key

logger = logging.getLogger(__name__)

CV_PROJECT_CONFIDENCE = 1.0
WEBSITE_PROJECT_CONFIDENCE = 0.8
NEW_GITHUB_PROJECT_MIN_CONFIDENCE = 0.6
MAX_PROJECTS = 10


def project_key(project: PortfolioProjectRecord) -> str:
    tech = project.technologies[0].lower() if project.technologies else ""
    return f"{normalize_key(project.name)}_{tech}"


def github_confidence(repo: GitHubRepository) -> float:
    confidence = 0.5
    if repo.stars > 10:
        confidence += 0.2
    if repo.stars > 50:
        confidence += 0.1
    if repo.forks > 5:
        confidence += 0.1
    if repo.description:
        confidence += 0.1
    return min(round(confidence, 2), 1.0)


def project_score(project: PortfolioProjectRecord) -> float:
    score = project.confidence * 100
    if project.metrics.stars:
        score += math.log(project.metrics.stars + 1) * 10
    if project.metrics.forks:
        score += math.log(project.metrics.forks + 1) * 5
    if project.url:
        score += 10
    if project.description:
        score += 5
    return score


class PortfolioEnrichmentService:
    def enrich_portfolio(self, cv: ParsedCV, external_data: EnrichedCVData) -> PortfolioEnrichmentResult:
        logger.info("[ENRICHMENT] Starting portfolio enrichment")

        existing = self.extract_existing_projects(cv)
        github = self.convert_github_projects(external_data.github.repositories if external_data.github else [])
        website = self.convert_website_projects(
            external_data.personal_website.portfolio_projects if external_data.personal_website else []
        )

        merged = self.merge_projects(existing, github, website)
        existing_keys = {project_key(p) for p in existing}

        result = PortfolioEnrichmentResult(
            enriched_projects=merged,
            new_projects_added=sum(1 for p in merged if project_key(p) not in existing_keys),
            projects_enhanced=sum(1 for p in merged if project_key(p) in existing_keys and p.source != "cv"),
            quality_score=self.calculate_quality_score(merged),
        )
        logger.info(
            f"[ENRICHMENT] Portfolio: {result.new_projects_added} new, "
            f"{result.projects_enhanced} enhanced"
        )
        return result

    @staticmethod
    def extract_existing_projects(cv: ParsedCV) -> List[PortfolioProjectRecord]:
        return [
            PortfolioProjectRecord(
                name=p.name,
                description=p.description or "",
                technologies=list(p.technologies),
                url=p.url,
                images=list(p.images),
                source="cv",
                confidence=CV_PROJECT_CONFIDENCE,
            )
            for p in cv.projects
        ]

    @staticmethod
    def convert_github_projects(repos: List[GitHubRepository]) -> List[PortfolioProjectRecord]:
        """Public repositories with at least one star."""
        return [
            PortfolioProjectRecord(
                name=repo.name,
                description=repo.description or "",
                technologies=([repo.language] if repo.language else []) + list(repo.topics),
                url=repo.url or None,
                source="github",
                metrics=ProjectMetrics(stars=repo.stars, forks=repo.forks, last_updated=repo.updated_at),
                confidence=github_confidence(repo),
            )
            for repo in repos
            if not repo.is_private and repo.stars > 0
        ]

    @staticmethod
    def convert_website_projects(projects: List[PortfolioProject]) -> List[PortfolioProjectRecord]:
        return [
            PortfolioProjectRecord(
                name=p.title,
                description=p.description or "",
                technologies=list(p.technologies),
                url=p.url,
                images=[p.image_url] if p.image_url else [],
                source="website",
                confidence=WEBSITE_PROJECT_CONFIDENCE,
            )
            for p in projects
        ]

    def merge_projects(
        self,
        existing: List[PortfolioProjectRecord],
        github: List[PortfolioProjectRecord],
        website: List[PortfolioProjectRecord],
    ) -> List[PortfolioProjectRecord]:
        merged: Dict[str, PortfolioProjectRecord] = {}
        for project in existing:
            merged[project_key(project)] = project

        for project in github:
            key = project_key(project)
            current = merged.get(key)
            if current is not None:
                merged[key] = self.enhance_project(current, project)
            elif project.confidence > NEW_GITHUB_PROJECT_MIN_CONFIDENCE:
                merged[key] = project

        for project in website:
            key = project_key(project)
            current = merged.get(key)
            merged[key] = self.enhance_project(current, project) if current is not None else project

        ranked = sorted(merged.values(), key=project_score, reverse=True)
        return ranked[:MAX_PROJECTS]

    @staticmethod
    def enhance_project(existing: PortfolioProjectRecord, additional: PortfolioProjectRecord) -> PortfolioProjectRecord:
        metrics = existing.metrics.model_dump(exclude_none=True)
        metrics.update(additional.metrics.model_dump(exclude_none=True))
        return PortfolioProjectRecord(
            name=existing.name,
            description=existing.description or additional.description,
            technologies=list(dict.fromkeys(existing.technologies + additional.technologies)),
            url=existing.url or additional.url,
            images=existing.images + additional.images,
            source=additional.source if existing.source == "cv" else existing.source,
            metrics=ProjectMetrics(**metrics),
            confidence=max(existing.confidence, additional.confidence),
        )

    @staticmethod
    def calculate_quality_score(projects: List[PortfolioProjectRecord]) -> int:
        if not projects:
            return 0
        total = 0
        for p in projects:
            score = 0
            if p.description:
                score += 20
            if p.url:
                score += 20
            if len(p.technologies) > 2:
                score += 20
            if (p.metrics.stars or 0) > 0:
                score += 20
            if p.images:
                score += 20
            total += score
        return round(total / len(projects))
