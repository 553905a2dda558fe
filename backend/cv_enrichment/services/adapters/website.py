"""
Personal website adapter - scrapes portfolio projects, blog posts and
testimonials from a candidate's own site with BeautifulSoup.

Sub-pages are discovered from navigation links whose text mentions one of
PAGE_KEYWORDS. A 404 on the main page is a SourceNotFoundError; failures on
sub-pages are logged and skipped.
"""
import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from ...config import Settings, get_settings
from ...exceptions import MissingIdentifierError, SourceFetchError, SourceNotFoundError
from ...schemas.external_data import (
    BlogPost,
    PersonalWebsite,
    PortfolioProject,
    SourceId,
    Testimonial,
)
from ...utils import is_valid_url, parse_date
from .base import SourceAdapter

logger = logging.getLogger(__name__)

PAGE_KEYWORDS = [
    "portfolio", "projects", "work", "blog", "posts", "articles",
    "testimonials", "reviews", "about", "resume", "cv",
]
NAV_LINK_SELECTOR = "nav a, header a, .navigation a, .menu a"

PORTFOLIO_PAGE_SELECTORS = [
    ".portfolio-item", ".project", ".work-item",
    "article.project", "div.portfolio-entry",
]
PORTFOLIO_MAIN_SELECTOR = ".portfolio-item, .project, .work-item"
TECHNOLOGY_SELECTOR = ".tech, .technology, .skill, .tag"
BLOG_POST_SELECTOR = "article, .post, .blog-post, .entry"
TESTIMONIAL_PAGE_SELECTOR = ".testimonial, .review, blockquote"
TESTIMONIAL_MAIN_SELECTOR = ".testimonial, .review, blockquote.testimonial"

MAX_PROJECTS = 10
MAX_POSTS = 10
MAX_TESTIMONIALS = 5
MAX_TECHNOLOGY_LENGTH = 30
WORDS_PER_MINUTE = 200


def estimate_read_time(text: str) -> int:
    words = len(text.split())
    return math.ceil(words / WORDS_PER_MINUTE)


def _text(element, selector: str) -> str:
    found = element.select_one(selector)
    return found.get_text(strip=True) if found is not None else ""


def _attr(element, selector: str, attr: str) -> Optional[str]:
    found = element.select_one(selector)
    if found is None:
        return None
    return found.get(attr)


class WebsiteAdapter(SourceAdapter):
    source_id = SourceId.WEBSITE
    schema = PersonalWebsite

    def __init__(self, settings: Optional[Settings] = None, **kwargs):
        super().__init__(**kwargs)
        self.settings = settings or get_settings()

    def _client_options(self) -> dict:
        return {"max_redirects": self.settings.website_max_redirects}

    def _request_options(self) -> dict:
        return {
            "timeout": self.settings.website_timeout_seconds,
            "follow_redirects": True,
            "headers": {"User-Agent": self.settings.website_user_agent},
        }

    async def _fetch(self, website_url: str) -> PersonalWebsite:
        if not is_valid_url(website_url):
            raise MissingIdentifierError(f"Invalid website URL: {website_url}", source=self.source_id.value)

        logger.info(f"[WEBSITE] Fetching {website_url}")
        async with self._session() as client:
            html = await self.fetch_page(client, website_url)
            soup = BeautifulSoup(html, "html.parser")

            metadata = self.extract_metadata(soup)
            pages = self.discover_pages(soup, website_url)

            projects, posts, testimonials = await asyncio.gather(
                self.extract_portfolio_projects(client, soup, website_url, pages),
                self.extract_blog_posts(client, pages),
                self.extract_testimonials(client, soup, pages),
            )

        logger.info(
            f"[WEBSITE] Extracted {website_url}: {len(projects)} projects, "
            f"{len(posts)} posts, {len(testimonials)} testimonials"
        )
        return PersonalWebsite(
            url=website_url,
            title=metadata["title"],
            description=metadata["description"],
            last_updated=metadata["last_updated"],
            portfolio_projects=projects,
            blog_posts=posts,
            testimonials=testimonials,
        )

    async def fetch_page(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            response = await self._get(client, url)
        except httpx.HTTPError as e:
            raise SourceFetchError(f"Website fetch failed: {e}", source=self.source_id.value) from e

        if response.status_code == 404:
            raise SourceNotFoundError("Website not found", source=self.source_id.value)
        if response.is_error:
            raise SourceFetchError(
                f"Website fetch failed: HTTP {response.status_code}",
                source=self.source_id.value,
            )
        return response.text

    async def _fetch_subpage(self, client: httpx.AsyncClient, url: str) -> Optional[BeautifulSoup]:
        try:
            return BeautifulSoup(await self.fetch_page(client, url), "html.parser")
        except SourceFetchError as e:
            logger.warning(f"[WEBSITE] Failed to fetch sub-page {url}: {e}")
            return None

    # ------------------------------------------------------------------
    # Page structure
    # ------------------------------------------------------------------

    @staticmethod
    def extract_metadata(soup: BeautifulSoup) -> dict:
        title = soup.title.get_text(strip=True) if soup.title else ""
        return {
            "title": title or _attr(soup, 'meta[property="og:title"]', "content") or "",
            "description": (
                _attr(soup, 'meta[name="description"]', "content")
                or _attr(soup, 'meta[property="og:description"]', "content")
                or ""
            ),
            "last_updated": (
                _attr(soup, 'meta[name="last-modified"]', "content")
                or datetime.now(timezone.utc).isoformat()
            ),
        }

    @staticmethod
    def discover_pages(soup: BeautifulSoup, base_url: str) -> Dict[str, str]:
        """Map lowercased nav link text to same-origin absolute URLs."""
        base = urlparse(base_url)
        pages: Dict[str, str] = {}
        for link in soup.select(NAV_LINK_SELECTOR):
            href = link.get("href")
            text = link.get_text(strip=True).lower()
            if not href or not any(keyword in text for keyword in PAGE_KEYWORDS):
                continue
            absolute = urljoin(base_url, href)
            target = urlparse(absolute)
            if (target.scheme, target.netloc) == (base.scheme, base.netloc):
                pages[text] = absolute
        return pages

    @staticmethod
    def _find_page(pages: Dict[str, str], *needles: str) -> Optional[str]:
        for text, url in pages.items():
            if any(needle in text for needle in needles):
                return url
        return None

    # ------------------------------------------------------------------
    # Portfolio
    # ------------------------------------------------------------------

    async def extract_portfolio_projects(
        self,
        client: httpx.AsyncClient,
        soup: BeautifulSoup,
        base_url: str,
        pages: Dict[str, str],
    ) -> List[PortfolioProject]:
        projects: List[PortfolioProject] = []

        portfolio_url = self._find_page(pages, "portfolio", "project")
        if portfolio_url:
            page = await self._fetch_subpage(client, portfolio_url)
            if page is not None:
                for selector in PORTFOLIO_PAGE_SELECTORS:
                    for element in page.select(selector):
                        project = self.parse_project(element, portfolio_url)
                        if project.title:
                            projects.append(project)
                    if projects:
                        break

        for element in soup.select(PORTFOLIO_MAIN_SELECTOR):
            project = self.parse_project(element, base_url)
            if project.title:
                projects.append(project)

        return projects[:MAX_PROJECTS]

    @staticmethod
    def parse_project(element, page_url: str) -> PortfolioProject:
        href = _attr(element, "a", "href")
        src = _attr(element, "img", "src")
        technologies = []
        for tag in element.select(TECHNOLOGY_SELECTOR):
            tech = tag.get_text(strip=True)
            if tech and len(tech) < MAX_TECHNOLOGY_LENGTH:
                technologies.append(tech)

        return PortfolioProject(
            title=_text(element, "h2, h3, h4, .title, .project-title"),
            description=_text(element, "p, .description, .summary") or None,
            url=urljoin(page_url, href) if href else None,
            image_url=urljoin(page_url, src) if src else None,
            technologies=technologies,
            role=_text(element, ".role") or None,
            duration=_text(element, ".duration, .date") or None,
        )

    # ------------------------------------------------------------------
    # Blog
    # ------------------------------------------------------------------

    async def extract_blog_posts(self, client: httpx.AsyncClient, pages: Dict[str, str]) -> List[BlogPost]:
        posts: List[BlogPost] = []
        blog_url = self._find_page(pages, "blog", "article")
        if blog_url:
            page = await self._fetch_subpage(client, blog_url)
            if page is not None:
                for element in page.select(BLOG_POST_SELECTOR):
                    post = self.parse_blog_post(element, blog_url)
                    if post.title:
                        posts.append(post)
        return posts[:MAX_POSTS]

    @staticmethod
    def parse_blog_post(element, page_url: str) -> BlogPost:
        href = _attr(element, "a", "href")
        excerpt = _text(element, "p, .excerpt, .summary")
        published = parse_date(_text(element, ".date, .published, time"))
        tags = [t.get_text(strip=True) for t in element.select(".tag, .category") if t.get_text(strip=True)]

        return BlogPost(
            title=_text(element, "h2, h3, .title, .post-title"),
            url=urljoin(page_url, href) if href else "",
            excerpt=excerpt or None,
            published_date=published.isoformat() if published else None,
            tags=tags,
            read_time=estimate_read_time(excerpt),
        )

    # ------------------------------------------------------------------
    # Testimonials
    # ------------------------------------------------------------------

    async def extract_testimonials(
        self,
        client: httpx.AsyncClient,
        soup: BeautifulSoup,
        pages: Dict[str, str],
    ) -> List[Testimonial]:
        testimonials: List[Testimonial] = []

        testimonials_url = self._find_page(pages, "testimonial", "review")
        if testimonials_url:
            page = await self._fetch_subpage(client, testimonials_url)
            if page is not None:
                testimonials.extend(self._parse_testimonials(page, TESTIMONIAL_PAGE_SELECTOR))

        testimonials.extend(self._parse_testimonials(soup, TESTIMONIAL_MAIN_SELECTOR))
        return testimonials[:MAX_TESTIMONIALS]

    def _parse_testimonials(self, soup: BeautifulSoup, selector: str) -> List[Testimonial]:
        found = []
        for element in soup.select(selector):
            testimonial = self.parse_testimonial(element)
            if testimonial is not None:
                found.append(testimonial)
        return found

    @staticmethod
    def parse_testimonial(element) -> Optional[Testimonial]:
        text = _text(element, "p, .text, .content") or element.get_text(strip=True)
        author = _text(element, ".author, .name, cite")
        if not text or not author:
            return None

        rating_text = _attr(element, ".rating, .stars", "data-rating") or _text(element, ".rating, .stars")
        try:
            rating = float(rating_text) if rating_text else None
        except ValueError:
            rating = None

        return Testimonial(
            author=author,
            role=_text(element, ".role, .title, .position") or None,
            company=_text(element, ".company, .organization") or None,
            text=text,
            rating=rating,
        )
