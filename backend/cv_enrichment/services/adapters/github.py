"""
GitHub adapter - public profile, repositories, language byte totals and
recent contribution activity via the GitHub REST API.
"""
import asyncio
import logging
import re
from datetime import date, timedelta
from typing import Dict, List, Optional

import httpx

from ...config import Settings, get_settings
from ...exceptions import SourceFetchError
from ...schemas.external_data import (
    GitHubData,
    GitHubProfile,
    GitHubRepository,
    GitHubStats,
    SourceId,
)
from ...utils import parse_date
from .base import SourceAdapter

logger = logging.getLogger(__name__)

TOP_REPOSITORIES = 5

_GITHUB_URL = re.compile(r"^(?:https?://)?(?:www\.)?github\.com/([^/?#\s]+)", re.IGNORECASE)


def extract_github_username(identifier: str) -> str:
    """Accept a bare username, "@username" or a profile URL."""
    value = (identifier or "").strip()
    match = _GITHUB_URL.match(value)
    if match:
        return match.group(1)
    return value.lstrip("@").strip("/")


def calculate_contribution_streak(active_days: List[date]) -> int:
    """Consecutive active days ending at the most recent active day."""
    if not active_days:
        return 0
    days = set(active_days)
    current = max(days)
    streak = 0
    while current in days:
        streak += 1
        current -= timedelta(days=1)
    return streak


class GitHubAdapter(SourceAdapter):
    source_id = SourceId.GITHUB
    schema = GitHubData

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings or get_settings()
        self.api_url = self.settings.github_api_url.rstrip("/")

    def _request_options(self) -> dict:
        headers = {"Accept": "application/vnd.github+json"}
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        return {"timeout": 30.0, "headers": headers}

    async def fetch_data(self, identifier: str) -> GitHubData:
        return await super().fetch_data(extract_github_username(identifier))

    async def _fetch(self, username: str) -> GitHubData:
        logger.info(f"[GITHUB] Fetching data for {username}")
        try:
            async with self._session() as client:
                user_response = await self._get(client, f"{self.api_url}/users/{username}")
                if user_response.status_code == 404:
                    logger.info(f"[GITHUB] User not found: {username}")
                    return GitHubData(profile=GitHubProfile(username=username))
                user_response.raise_for_status()
                profile = self._parse_profile(user_response.json(), username)

                repos_response = await self._get(
                    client,
                    f"{self.api_url}/users/{username}/repos",
                    params={"per_page": 100, "sort": "updated"},
                )
                repos_response.raise_for_status()
                repositories = [self._parse_repository(r) for r in repos_response.json()]

                languages = await self._fetch_languages(client, username, repositories)
                total_contributions, streak = await self._fetch_activity(client, username)

        except httpx.HTTPError as e:
            logger.error(f"[GITHUB] Fetch failed for {username}: {e}")
            raise SourceFetchError(f"GitHub fetch failed: {e}", source=self.source_id.value) from e

        by_stars = sorted(repositories, key=lambda r: r.stars, reverse=True)
        stats = GitHubStats(
            total_stars=sum(r.stars for r in repositories),
            total_forks=sum(r.forks for r in repositories),
            total_contributions=total_contributions,
            languages=languages,
            top_repositories=by_stars[:TOP_REPOSITORIES],
            contribution_streak=streak,
        )

        logger.info(
            f"[GITHUB] Fetched {username}: {len(repositories)} repos, "
            f"{len(languages)} languages, {total_contributions} contributions"
        )
        return GitHubData(profile=profile, stats=stats, repositories=repositories)

    async def _fetch_languages(
        self,
        client: httpx.AsyncClient,
        username: str,
        repositories: List[GitHubRepository],
    ) -> Dict[str, int]:
        candidates = sorted(
            (r for r in repositories if not r.is_fork),
            key=lambda r: r.stars,
            reverse=True,
        )[: self.settings.github_max_language_repos]

        responses = await asyncio.gather(*[
            self._get(client, f"{self.api_url}/repos/{username}/{repo.name}/languages")
            for repo in candidates
        ])

        totals: Dict[str, int] = {}
        for repo, response in zip(candidates, responses):
            if response.status_code != 200:
                logger.warning(f"[GITHUB] No language data for {username}/{repo.name}: {response.status_code}")
                continue
            for language, size in response.json().items():
                totals[language] = totals.get(language, 0) + int(size)
        return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))

    async def _fetch_activity(self, client: httpx.AsyncClient, username: str):
        response = await self._get(
            client,
            f"{self.api_url}/users/{username}/events/public",
            params={"per_page": 100},
        )
        if response.status_code != 200:
            logger.warning(f"[GITHUB] No activity data for {username}: {response.status_code}")
            return 0, 0

        contributions = 0
        active_days = []
        for event in response.json():
            if event.get("type") == "PushEvent":
                contributions += (event.get("payload") or {}).get("size") or 1
            else:
                contributions += 1
            created = parse_date(event.get("created_at"))
            if created is not None:
                active_days.append(created.date())

        return contributions, calculate_contribution_streak(active_days)

    @staticmethod
    def _parse_profile(data: dict, username: str) -> GitHubProfile:
        return GitHubProfile(
            username=data.get("login") or username,
            name=data.get("name"),
            bio=data.get("bio"),
            location=data.get("location"),
            company=data.get("company"),
            blog=data.get("blog") or None,
            email=data.get("email"),
            followers=data.get("followers") or 0,
            following=data.get("following") or 0,
            public_repos=data.get("public_repos") or 0,
            public_gists=data.get("public_gists") or 0,
            created_at=data.get("created_at"),
            avatar_url=data.get("avatar_url"),
        )

    @staticmethod
    def _parse_repository(data: dict) -> GitHubRepository:
        return GitHubRepository(
            name=data["name"],
            description=data.get("description"),
            url=data.get("html_url") or "",
            language=data.get("language"),
            stars=data.get("stargazers_count") or 0,
            forks=data.get("forks_count") or 0,
            watchers=data.get("watchers_count") or 0,
            is_private=bool(data.get("private")),
            is_fork=bool(data.get("fork")),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            topics=data.get("topics") or [],
        )
