"""
Web search adapter - professional presence, publications, speaking
engagements and awards via the Google Custom Search JSON API.

Four query groups run concurrently; queries inside a group run one after
another. A failed query is logged and skipped. Missing API credentials
degrade to empty results.
"""
import asyncio
import logging
import re
from typing import List, Optional
from urllib.parse import urlparse

import httpx

from ...config import Settings, get_settings
from ...exceptions import SourceFetchError
from ...schemas.external_data import (
    Award,
    SourceId,
    SpeakingEngagement,
    WebPresence,
    WebPublication,
    WebSearchResult,
)
from .base import SourceAdapter

logger = logging.getLogger(__name__)

GENERAL_QUERIES = [
    '"{name}" professional',
    '"{name}" software engineer',
    '"{name}" developer',
    '"{name}" LinkedIn',
]
PUBLICATION_QUERIES = [
    '"{name}" site:medium.com',
    '"{name}" site:dev.to',
    '"{name}" site:arxiv.org',
    '"{name}" published article',
    '"{name}" research paper',
]
SPEAKING_QUERIES = [
    '"{name}" conference speaker',
    '"{name}" keynote',
    '"{name}" tech talk',
    '"{name}" presentation',
]
AWARD_QUERIES = [
    '"{name}" award winner',
    '"{name}" recognition',
    '"{name}" honored',
    '"{name}" achievement',
]

GENERAL_RESULT_LIMIT = 5
GROUP_RESULT_LIMIT = 3

TRUSTED_DOMAINS = ["linkedin.com", "github.com", "medium.com", "arxiv.org"]
SPEAKING_KEYWORDS = ["conference", "speaker", "keynote", "talk", "presentation", "summit"]
AWARD_KEYWORDS = ["award", "winner", "recognition", "honored", "prize", "achievement"]

_ORGANIZATION = re.compile(r"(?:by|from|at)\s+([A-Z][^.]+)")
_TITLE_SUFFIX = re.compile(r"\s*[-–]\s*.*$")


def calculate_relevance(title: str, snippet: str, url: str, query: str) -> float:
    terms = query.lower().split(" ")
    title_lower = (title or "").lower()
    snippet_lower = (snippet or "").lower()

    score = 0
    for term in terms:
        if term in title_lower:
            score += 2
        if term in snippet_lower:
            score += 1
    if any(domain in (url or "") for domain in TRUSTED_DOMAINS):
        score += 3
    return score


def classify_publication_type(url: str, title: str) -> str:
    title_lower = title.lower()
    if "arxiv.org" in url:
        return "paper"
    if "medium.com" in url or "dev.to" in url:
        return "blog"
    if "book" in title_lower:
        return "book"
    if "research" in title_lower or "paper" in title_lower:
        return "paper"
    return "article"


def extract_publisher(url: str) -> str:
    host = urlparse(url).hostname
    if not host:
        return "Unknown"
    return host.replace("www.", "", 1)


def extract_event_name(title: str) -> str:
    return title.split("-")[0].strip()


def extract_award_title(title: str) -> str:
    return _TITLE_SUFFIX.sub("", title).strip()


def extract_organization(snippet: str) -> str:
    match = _ORGANIZATION.search(snippet or "")
    if match and match.group(1):
        return match.group(1).strip()
    return "Unknown Organization"


def _mentions_any(result: WebSearchResult, keywords: List[str]) -> bool:
    text = f"{result.title} {result.snippet}".lower()
    return any(keyword in text for keyword in keywords)


def deduplicate_results(results: List[WebSearchResult]) -> List[WebSearchResult]:
    seen = set()
    unique = []
    for result in results:
        if result.url in seen:
            continue
        seen.add(result.url)
        unique.append(result)
    return unique


class WebSearchAdapter(SourceAdapter):
    source_id = SourceId.WEB
    schema = WebPresence

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return bool(self.settings.google_search_api_key and self.settings.google_search_engine_id)

    async def _fetch(self, person_name: str) -> WebPresence:
        logger.info(f"[WEB-SEARCH] Searching web presence for {person_name}")
        async with self._session() as client:
            general, publications, speaking, awards = await asyncio.gather(
                self.search_general(client, person_name),
                self.search_publications(client, person_name),
                self.search_speaking_engagements(client, person_name),
                self.search_awards(client, person_name),
            )

        logger.info(
            f"[WEB-SEARCH] Completed for {person_name}: {len(general)} results, "
            f"{len(publications)} publications"
        )
        return WebPresence(
            search_results=general,
            publications=publications,
            speaking_engagements=speaking,
            awards=awards,
            mentions=len(general),
        )

    async def search_general(self, client: httpx.AsyncClient, name: str) -> List[WebSearchResult]:
        results = []
        for query in GENERAL_QUERIES:
            results.extend(await self._safe_search(client, query.format(name=name), GENERAL_RESULT_LIMIT))
        unique = deduplicate_results(results)
        return sorted(unique, key=lambda r: r.relevance_score, reverse=True)

    async def search_publications(self, client: httpx.AsyncClient, name: str) -> List[WebPublication]:
        publications = []
        for query in PUBLICATION_QUERIES:
            for result in await self._safe_search(client, query.format(name=name), GROUP_RESULT_LIMIT):
                publications.append(WebPublication(
                    title=result.title,
                    url=result.url,
                    publisher=extract_publisher(result.url),
                    date=result.published_date,
                    type=classify_publication_type(result.url, result.title),
                ))
        return publications

    async def search_speaking_engagements(self, client: httpx.AsyncClient, name: str) -> List[SpeakingEngagement]:
        engagements = []
        for query in SPEAKING_QUERIES:
            for result in await self._safe_search(client, query.format(name=name), GROUP_RESULT_LIMIT):
                if _mentions_any(result, SPEAKING_KEYWORDS):
                    engagements.append(SpeakingEngagement(
                        event=extract_event_name(result.title),
                        title=result.title,
                        date=result.published_date,
                        url=result.url,
                    ))
        return engagements

    async def search_awards(self, client: httpx.AsyncClient, name: str) -> List[Award]:
        awards = []
        for query in AWARD_QUERIES:
            for result in await self._safe_search(client, query.format(name=name), GROUP_RESULT_LIMIT):
                if _mentions_any(result, AWARD_KEYWORDS):
                    awards.append(Award(
                        title=extract_award_title(result.title),
                        organization=extract_organization(result.snippet),
                        date=result.published_date,
                        description=result.snippet,
                    ))
        return awards

    async def _safe_search(self, client: httpx.AsyncClient, query: str, limit: int) -> List[WebSearchResult]:
        try:
            return await self.perform_search(client, query, limit)
        except SourceFetchError as e:
            logger.warning(f"[WEB-SEARCH] Query failed, skipping: {query!r}: {e}")
            return []

    async def perform_search(self, client: httpx.AsyncClient, query: str, limit: int = 10) -> List[WebSearchResult]:
        if not self.is_configured:
            logger.warning("[WEB-SEARCH] Search API not configured, returning empty results")
            return []

        try:
            response = await self._get(
                client,
                self.settings.google_search_url,
                params={
                    "key": self.settings.google_search_api_key,
                    "cx": self.settings.google_search_engine_id,
                    "q": query,
                    "num": limit,
                },
            )
            response.raise_for_status()
            items = response.json().get("items") or []
        except (httpx.HTTPError, ValueError) as e:
            raise SourceFetchError(f"Search API error: {e}", source=self.source_id.value) from e

        results = []
        for item in items:
            link = item.get("link") or ""
            if not link:
                continue
            metatags = (item.get("pagemap") or {}).get("metatags") or [{}]
            results.append(WebSearchResult(
                title=item.get("title") or "",
                url=link,
                snippet=item.get("snippet") or "",
                source=urlparse(link).hostname or "",
                relevance_score=calculate_relevance(item.get("title"), item.get("snippet"), link, query),
                published_date=metatags[0].get("article:published_time"),
            ))
        return results
