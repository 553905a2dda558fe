from pydantic_settings import BaseSettings
from functools import lru_cache
import os


class Settings(BaseSettings):
    app_name: str = "CV Enrichment API"
    debug: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Database - supports both SQLite (local) and PostgreSQL (production)
    database_url: str = "sqlite+aiosqlite:///./cv_enrichment.db"

    # CORS - comma-separated list of allowed origins
    cors_origins: str = "http://localhost:5173,http://localhost:5174,http://localhost:3000"

    # GitHub REST API (token optional, raises the rate limit)
    github_api_url: str = "https://api.github.com"
    github_token: str = ""
    github_max_language_repos: int = 10

    # LinkedIn profile data provider
    linkedin_api_url: str = ""
    linkedin_api_key: str = ""

    # Google Custom Search
    google_search_url: str = "https://www.googleapis.com/customsearch/v1"
    google_search_api_key: str = ""
    google_search_engine_id: str = ""

    # Personal website scraping
    website_user_agent: str = "CVEnrichment-Bot/1.0 (CV Enhancement Service)"
    website_timeout_seconds: float = 10.0
    website_max_redirects: int = 3

    # Orchestration
    orchestration_timeout_seconds: float = 30.0
    orchestration_cache_ttl_seconds: int = 3600  # 1 hour
    adapter_cache_ttl_seconds: int = 3600

    # Cache
    cache_memory_max_entries: int = 100
    cache_max_size_mb: int = 10
    cache_cleanup_interval_seconds: int = 3600

    # Retry policy for source fetches
    retry_max_attempts: int = 3
    retry_initial_delay_seconds: float = 1.0

    # Enrichment
    experience_conflict_threshold: int = 2

    class Config:
        env_file = ".env"
        extra = "ignore"
        # Make field names case-insensitive for environment variables
        case_sensitive = False

    def get_cors_origins(self) -> list:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
