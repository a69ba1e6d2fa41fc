"""skillsurf configuration — loaded from environment / .env file."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SKILLSURF_", extra="ignore")

    env: str = "development"
    log_level: str = "INFO"
    database_url: str = "sqlite+aiosqlite:///./skillsurf.db"

    # GitHub
    github_token: str = ""
    github_api_base: str = "https://api.github.com"
    github_raw_base: str = "https://raw.githubusercontent.com"
    user_agent: str = "skills.surf"
    http_timeout: float = 30.0

    # Code search queries; GitHub caps each one at 1000 results
    search_queries: list[str] = [
        "filename:SKILL.md name description compatibility",
        "filename:SKILL.md org:anthropics",
        "filename:SKILL.md org:851-labs",
        "filename:SKILL.md claude skill agent",
    ]
    search_page_delay: float = 0.1  # seconds between result pages
    search_query_delay: float = 0.5  # seconds between queries
    search_max_results: int = 1000

    # Reconciliation
    strict_validation: bool = True  # drop manifests that fail frontmatter validation

    # Work queue
    queue_concurrency: int = 4
    queue_max_retries: int = 3
    queue_retry_base_delay: float = 2.0

    # Daily discovery (UTC hour)
    discovery_schedule_enabled: bool = True
    discovery_schedule_hour: int = 6

    # Raw SKILL.md read cache
    content_cache_stale_after: float = 5 * 60
    content_cache_expire_after: float = 24 * 60 * 60

    # Admin trigger endpoints; empty disables them
    admin_secret: str = ""

    @property
    def github_configured(self) -> bool:
        return bool(self.github_token)


settings = Settings()
