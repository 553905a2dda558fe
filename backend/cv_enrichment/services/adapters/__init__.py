from .base import SourceAdapter
from .github import GitHubAdapter, extract_github_username
from .linkedin import LinkedInAdapter
from .web_search import WebSearchAdapter
from .website import WebsiteAdapter

__all__ = [
    "SourceAdapter",
    "GitHubAdapter",
    "extract_github_username",
    "LinkedInAdapter",
    "WebSearchAdapter",
    "WebsiteAdapter",
]
