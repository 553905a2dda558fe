"""Adapter tests against canned HTTP responses (httpx.MockTransport, no network)."""
from datetime import date

import httpx
import pytest
from bs4 import BeautifulSoup

from cv_enrichment.exceptions import MissingIdentifierError, SourceFetchError, SourceNotFoundError
from cv_enrichment.services.adapters import (
    GitHubAdapter,
    LinkedInAdapter,
    WebSearchAdapter,
    WebsiteAdapter,
    extract_github_username,
)
from cv_enrichment.services.adapters.github import calculate_contribution_streak
from cv_enrichment.services.adapters.linkedin import to_profile_url
from cv_enrichment.services.adapters.web_search import (
    calculate_relevance,
    classify_publication_type,
    extract_award_title,
    extract_organization,
)
from cv_enrichment.services.adapters.website import estimate_read_time


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ============================================================================
# GitHub
# ============================================================================

GITHUB_USER = {"login": "ada", "name": "Ada Lovelace", "bio": "Poet of science", "followers": 42}
GITHUB_REPOS = [
    {"name": "engine", "html_url": "https://github.com/ada/engine", "language": "Python",
     "stargazers_count": 30, "forks_count": 4, "topics": ["django", "docker"]},
    {"name": "notes", "html_url": "https://github.com/ada/notes", "language": "Go",
     "stargazers_count": 5, "forks_count": 0},
    {"name": "fork-of-something", "fork": True, "language": "C", "stargazers_count": 100},
]
GITHUB_LANGUAGES = {
    "engine": {"Python": 8000, "HTML": 500},
    "notes": {"Go": 2000},
}
GITHUB_EVENTS = [
    {"type": "PushEvent", "payload": {"size": 3}, "created_at": "2024-05-03T10:00:00Z"},
    {"type": "PushEvent", "payload": {"size": 2}, "created_at": "2024-05-02T10:00:00Z"},
    {"type": "IssuesEvent", "created_at": "2024-04-20T10:00:00Z"},
]


def github_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/users/ada":
        return httpx.Response(200, json=GITHUB_USER)
    if path == "/users/ada/repos":
        assert request.url.params["per_page"] == "100"
        return httpx.Response(200, json=GITHUB_REPOS)
    if path == "/users/ada/events/public":
        return httpx.Response(200, json=GITHUB_EVENTS)
    if path.startswith("/repos/ada/") and path.endswith("/languages"):
        repo = path.split("/")[3]
        return httpx.Response(200, json=GITHUB_LANGUAGES.get(repo, {}))
    return httpx.Response(404)


class TestGitHubAdapter:
    async def test_fetch_profile_repos_languages_and_activity(self, settings):
        adapter = GitHubAdapter(settings=settings, client=mock_client(github_handler))
        data = await adapter.fetch_data("https://github.com/ada")

        assert data.profile.username == "ada"
        assert data.profile.followers == 42
        assert [r.name for r in data.repositories] == ["engine", "notes", "fork-of-something"]
        assert data.repositories[2].is_fork is True
        assert data.stats.total_stars == 135
        assert data.stats.languages == {"Python": 8000, "Go": 2000, "HTML": 500}
        assert data.stats.total_contributions == 6
        assert data.stats.contribution_streak == 2
        assert data.stats.top_repositories[0].name == "fork-of-something"

    async def test_token_and_accept_headers_reach_injected_client(self, settings):
        seen = []

        def handler(request):
            seen.append((request.headers.get("Authorization"), request.headers.get("Accept")))
            return github_handler(request)

        with_token = settings.model_copy(update={"github_token": "gh-token"})
        adapter = GitHubAdapter(settings=with_token, client=mock_client(handler))
        await adapter.fetch_data("ada")

        assert seen
        assert set(seen) == {("Bearer gh-token", "application/vnd.github+json")}

    async def test_unknown_user_returns_empty_data(self, settings):
        adapter = GitHubAdapter(settings=settings, client=mock_client(lambda r: httpx.Response(404)))
        data = await adapter.fetch_data("ghost")
        assert data.profile.username == "ghost"
        assert data.repositories == []

    async def test_server_error_raises_source_fetch_error(self, settings):
        adapter = GitHubAdapter(settings=settings, client=mock_client(lambda r: httpx.Response(500)))
        with pytest.raises(SourceFetchError):
            await adapter.fetch_data("ada")

    async def test_results_are_cached(self, settings, cache):
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return github_handler(request)

        adapter = GitHubAdapter(settings=settings, client=mock_client(handler), cache=cache)
        first = await adapter.fetch_data("ada")
        count = len(calls)
        second = await adapter.fetch_data("@ada")

        assert len(calls) == count
        assert second.model_dump() == first.model_dump()

    @pytest.mark.parametrize("identifier,expected", [
        ("ada", "ada"),
        ("@ada", "ada"),
        ("https://github.com/ada", "ada"),
        ("github.com/ada/engine", "ada"),
        ("https://www.github.com/ada/", "ada"),
    ])
    def test_extract_username(self, identifier, expected):
        assert extract_github_username(identifier) == expected

    def test_contribution_streak(self):
        days = [date(2024, 5, 3), date(2024, 5, 2), date(2024, 5, 1), date(2024, 4, 28)]
        assert calculate_contribution_streak(days) == 3
        assert calculate_contribution_streak([]) == 0


# ============================================================================
# LinkedIn
# ============================================================================

LINKEDIN_PAYLOAD = {
    "headline": "Engineer",
    "summary": "Builds analytical engines",
    "experience": [{"title": "Lead", "company": "Engines Ltd", "skills": ["Leadership"]}],
    "certifications": [{"name": "AWS Certified Developer", "authority": "Amazon", "issue_date": "2023-01"}],
    "skills": [{"name": "Python"}, "Go"],
    "endorsements": 12,
}


class TestLinkedInAdapter:
    async def test_fetch_profile(self, settings):
        seen = {}

        def handler(request):
            seen["url"] = request.url.params["url"]
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=LINKEDIN_PAYLOAD)

        adapter = LinkedInAdapter(settings=settings, client=mock_client(handler))
        data = await adapter.fetch_data("ada")

        assert seen == {"url": "https://www.linkedin.com/in/ada", "auth": "Bearer li-key"}
        assert data.profile.summary == "Builds analytical engines"
        assert data.skills == ["Python", "Go"]
        assert data.certifications[0].issuing_organization == "Amazon"
        assert data.experience[0].skills == ["Leadership"]
        assert data.endorsements == 12

    async def test_unconfigured_returns_empty_data(self, settings):
        unconfigured = settings.model_copy(update={"linkedin_api_key": ""})

        def handler(request):
            raise AssertionError("no request expected")

        adapter = LinkedInAdapter(settings=unconfigured, client=mock_client(handler))
        data = await adapter.fetch_data("https://www.linkedin.com/in/ada/")
        assert data.profile.profile_url == "https://www.linkedin.com/in/ada"
        assert data.skills == []

    async def test_not_found_returns_empty_data(self, settings):
        adapter = LinkedInAdapter(settings=settings, client=mock_client(lambda r: httpx.Response(404)))
        data = await adapter.fetch_data("ada")
        assert data.experience == []

    def test_to_profile_url(self):
        assert to_profile_url("linkedin.com/in/ada") == "https://linkedin.com/in/ada"
        assert to_profile_url("ada") == "https://www.linkedin.com/in/ada"


# ============================================================================
# Web search
# ============================================================================

def search_handler(request: httpx.Request) -> httpx.Response:
    query = request.url.params["q"]
    if "professional" in query:
        return httpx.Response(200, json={"items": [
            {"title": "Ada Lovelace - LinkedIn", "link": "https://linkedin.com/in/ada",
             "snippet": "Ada Lovelace professional profile"},
        ]})
    if "software engineer" in query:
        return httpx.Response(200, json={"items": [
            {"title": "Ada Lovelace - LinkedIn", "link": "https://linkedin.com/in/ada", "snippet": ""},
            {"title": "Ada's blog", "link": "https://ada.dev", "snippet": "notes"},
        ]})
    if "site:arxiv.org" in query:
        return httpx.Response(200, json={"items": [
            {"title": "On Engines", "link": "https://arxiv.org/abs/1", "snippet": "",
             "pagemap": {"metatags": [{"article:published_time": "2023-02-01"}]}},
        ]})
    if "keynote" in query:
        return httpx.Response(200, json={"items": [
            {"title": "PyCon 2024 - Keynote by Ada", "link": "https://pycon.org/ada", "snippet": "keynote talk"},
            {"title": "Unrelated page", "link": "https://example.com", "snippet": "nothing here"},
        ]})
    if "award winner" in query:
        return httpx.Response(200, json={"items": [
            {"title": "Engine Award - News", "link": "https://news.example/award",
             "snippet": "Ada was named award winner by Royal Society."},
        ]})
    if "honored" in query:
        return httpx.Response(500)
    return httpx.Response(200, json={})


class TestWebSearchAdapter:
    async def test_collects_all_groups(self, settings):
        adapter = WebSearchAdapter(settings=settings, client=mock_client(search_handler))
        data = await adapter.fetch_data("Ada Lovelace")

        assert [r.url for r in data.search_results] == ["https://linkedin.com/in/ada", "https://ada.dev"]
        assert data.mentions == 2
        assert data.publications[0].type == "paper"
        assert data.publications[0].publisher == "arxiv.org"
        assert data.publications[0].date == "2023-02-01"
        assert [e.event for e in data.speaking_engagements] == ["PyCon 2024"]
        assert data.awards[0].title == "Engine Award"
        assert data.awards[0].organization == "Royal Society"

    async def test_unconfigured_returns_empty_presence(self, settings):
        unconfigured = settings.model_copy(update={"google_search_api_key": ""})
        adapter = WebSearchAdapter(settings=unconfigured, client=mock_client(search_handler))
        data = await adapter.fetch_data("Ada Lovelace")
        assert data.search_results == []
        assert data.mentions == 0

    async def test_perform_search_wraps_http_errors(self, settings):
        adapter = WebSearchAdapter(settings=settings)
        async with mock_client(lambda r: httpx.Response(503)) as client:
            with pytest.raises(SourceFetchError):
                await adapter.perform_search(client, '"Ada" professional', 5)

    def test_relevance(self):
        score = calculate_relevance("Ada Lovelace", "ada", "https://github.com/ada", "ada lovelace")
        # ada: title +2, snippet +1; lovelace: title +2; trusted domain +3
        assert score == 8

    @pytest.mark.parametrize("url,title,expected", [
        ("https://arxiv.org/abs/1", "Anything", "paper"),
        ("https://medium.com/@ada/x", "Anything", "blog"),
        ("https://dev.to/ada/x", "Anything", "blog"),
        ("https://press.example", "My Book", "book"),
        ("https://journal.example", "A Research Note", "paper"),
        ("https://news.example", "Interview", "article"),
    ])
    def test_publication_type(self, url, title, expected):
        assert classify_publication_type(url, title) == expected

    def test_award_helpers(self):
        assert extract_award_title("Best Paper – Conference 2020") == "Best Paper"
        assert extract_organization("honored at the gala") == "Unknown Organization"
        assert extract_organization("recognized by IEEE.") == "IEEE"


# ============================================================================
# Personal website
# ============================================================================

HOME_PAGE = """
<html><head>
  <title>Ada Lovelace</title>
  <meta name="description" content="Engines and poetry">
  <meta name="last-modified" content="2024-05-01">
</head><body>
  <nav>
    <a href="/portfolio">Portfolio</a>
    <a href="/blog">Blog</a>
    <a href="/testimonials">Testimonials</a>
    <a href="https://elsewhere.example/work">Work elsewhere</a>
  </nav>
  <div class="project"><h3>Home Project</h3><p>On the home page</p></div>
</body></html>
"""

PORTFOLIO_PAGE = """
<html><body>
  <div class="portfolio-item">
    <h3>Difference Engine</h3>
    <p>Mechanical calculator</p>
    <a href="/projects/engine">Details</a>
    <img src="/img/engine.png">
    <span class="tech">Brass</span><span class="tech">Gears</span>
  </div>
  <div class="portfolio-item"><p>No title here</p></div>
</body></html>
"""

BLOG_PAGE = """
<html><body>
  <article>
    <h2>Notes on the Engine</h2>
    <a href="/blog/notes">Read</a>
    <p>A short excerpt.</p>
    <time>2023-04-01</time>
    <span class="tag">machine-learning</span>
  </article>
</body></html>
"""

TESTIMONIALS_PAGE = """
<html><body>
  <div class="testimonial">
    <p>Brilliant mathematician.</p>
    <span class="author">Charles Babbage</span>
    <span class="rating" data-rating="5">5 stars</span>
  </div>
  <div class="testimonial"><p>Anonymous praise</p></div>
</body></html>
"""

SITE_PAGES = {
    "/": HOME_PAGE,
    "/portfolio": PORTFOLIO_PAGE,
    "/blog": BLOG_PAGE,
    "/testimonials": TESTIMONIALS_PAGE,
}


def site_handler(request: httpx.Request) -> httpx.Response:
    assert request.headers["User-Agent"].startswith("CVEnrichment-Bot")
    page = SITE_PAGES.get(request.url.path)
    if page is None:
        return httpx.Response(404)
    return httpx.Response(200, text=page)


class TestWebsiteAdapter:
    async def test_scrapes_projects_posts_and_testimonials(self, settings):
        adapter = WebsiteAdapter(settings=settings, client=mock_client(site_handler))
        site = await adapter.fetch_data("https://ada.dev/")

        assert site.title == "Ada Lovelace"
        assert site.description == "Engines and poetry"
        assert site.last_updated == "2024-05-01"

        assert [p.title for p in site.portfolio_projects] == ["Difference Engine", "Home Project"]
        engine = site.portfolio_projects[0]
        assert engine.url == "https://ada.dev/projects/engine"
        assert engine.image_url == "https://ada.dev/img/engine.png"
        assert engine.technologies == ["Brass", "Gears"]

        post = site.blog_posts[0]
        assert post.title == "Notes on the Engine"
        assert post.url == "https://ada.dev/blog/notes"
        assert post.tags == ["machine-learning"]
        assert post.published_date.startswith("2023-04-01")
        assert post.read_time == 1

        assert len(site.testimonials) == 1
        assert site.testimonials[0].author == "Charles Babbage"
        assert site.testimonials[0].rating == 5.0

    async def test_missing_subpages_are_skipped(self, settings):
        def handler(request):
            if request.url.path == "/":
                return httpx.Response(200, text=HOME_PAGE)
            return httpx.Response(500)

        adapter = WebsiteAdapter(settings=settings, client=mock_client(handler))
        site = await adapter.fetch_data("https://ada.dev/")
        assert [p.title for p in site.portfolio_projects] == ["Home Project"]
        assert site.blog_posts == []

    async def test_redirects_are_followed_on_injected_client(self, settings):
        def handler(request):
            if request.url.host == "ada.dev" and request.url.path == "/":
                return httpx.Response(301, headers={"Location": "https://ada.dev/home"})
            if request.url.path == "/home":
                return httpx.Response(200, text="<html><head><title>Moved</title></head></html>")
            return httpx.Response(404)

        adapter = WebsiteAdapter(settings=settings, client=mock_client(handler))
        site = await adapter.fetch_data("https://ada.dev/")
        assert site.title == "Moved"

    async def test_not_found(self, settings):
        adapter = WebsiteAdapter(settings=settings, client=mock_client(lambda r: httpx.Response(404)))
        with pytest.raises(SourceNotFoundError):
            await adapter.fetch_data("https://ada.dev/")

    async def test_invalid_url(self, settings):
        adapter = WebsiteAdapter(settings=settings, client=mock_client(site_handler))
        with pytest.raises(MissingIdentifierError):
            await adapter.fetch_data("ada.dev")

    def test_discover_pages_keeps_same_origin_only(self):
        pages = WebsiteAdapter.discover_pages(BeautifulSoup(HOME_PAGE, "html.parser"), "https://ada.dev/")
        assert pages == {
            "portfolio": "https://ada.dev/portfolio",
            "blog": "https://ada.dev/blog",
            "testimonials": "https://ada.dev/testimonials",
        }

    def test_discover_pages_rejects_lookalike_hosts(self):
        html = """
        <nav>
          <a href="https://ada.dev.attacker.com/portfolio">Portfolio</a>
          <a href="https://ada.devious.io/blog">Blog</a>
          <a href="http://ada.dev/testimonials">Testimonials</a>
        </nav>
        """
        pages = WebsiteAdapter.discover_pages(BeautifulSoup(html, "html.parser"), "https://ada.dev")
        assert pages == {}

    def test_estimate_read_time(self):
        assert estimate_read_time("word " * 401) == 3
        assert estimate_read_time("") == 0
