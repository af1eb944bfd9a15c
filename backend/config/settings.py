from pydantic_settings import BaseSettings
from typing import List
from pathlib import Path

# Get absolute path to backend directory (config/settings.py -> backend/)
_backend_dir = Path(__file__).parent.parent
_env_local = _backend_dir / '.env.local'
_env_file = _backend_dir / '.env'


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application settings"""

    # Crawl pacing (list pages)
    MAX_PAGES: int = 10
    PAGE_DELAY_SECONDS: float = 1.0
    COUNTRY_DELAY_SECONDS: float = 2.0
    KEYWORD_DELAY_SECONDS: float = 3.0
    DEFAULT_TIME_FILTER_SECONDS: int = 86400  # last 24 hours
    NAVIGATION_TIMEOUT_MS: int = 30000

    # Detail enrichment
    ENRICH_POOL_SIZE: int = 4
    ENRICH_BATCH_DELAY_SECONDS: float = 2.0
    ENRICH_REQUEST_TIMEOUT_MS: int = 45000
    ENRICH_SELECTOR_TIMEOUT_MS: int = 5000
    ENRICH_MAX_RETRIES: int = 2
    ENRICH_RETRY_BASE_SECONDS: float = 5.0
    ENRICH_RETRY_INCREMENT_SECONDS: float = 3.0
    ENRICH_JITTER_MIN_SECONDS: float = 1.7
    ENRICH_JITTER_MAX_SECONDS: float = 2.7
    ENRICH_SETTLE_SECONDS: float = 2.0

    # Persistent URL cache (48h TTL)
    URL_CACHE_FILE: str = "cache/linkedin-jobs-cache.json"
    URL_CACHE_OBJECT_KEY: str = ""  # Non-empty = store cache in archive bucket
    URL_CACHE_TTL_HOURS: int = 48

    # Archive object storage (S3 / R2 compatible). Empty bucket = degraded mode
    ARCHIVE_BUCKET: str = ""
    ARCHIVE_ENDPOINT_URL: str = ""
    ARCHIVE_ACCESS_KEY_ID: str = ""
    ARCHIVE_SECRET_ACCESS_KEY: str = ""
    ARCHIVE_REGION: str = "auto"

    # Telegram notifications
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_CHAT_ID: str = ""
    DISPATCH_DELAY_SECONDS: float = 2.0

    # RSS feeds (comma-separated)
    RSS_FEED_URLS: str = ""
    RSS_STATS_FEED_URLS: str = ""
    CHECK_INTERVAL_MINUTES: int = 1440

    # CORS - Will be parsed from environment variable string
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    class Config:
        # Prioritize .env.local for local development, fallback to .env
        # Use absolute paths to avoid working directory issues
        env_file = str(_env_local) if _env_local.exists() else str(_env_file)
        case_sensitive = True
        extra = "ignore"  # Ignore extra fields from environment file

    def get_allowed_origins(self) -> List[str]:
        """Parse and return CORS origins as a list"""
        return _split_csv(self.ALLOWED_ORIGINS)

    def get_rss_feed_urls(self) -> List[str]:
        """Parse and return RSS monitor feed URLs as a list"""
        return _split_csv(self.RSS_FEED_URLS)

    def get_rss_stats_feed_urls(self) -> List[str]:
        """Parse and return RSS statistics feed URLs as a list"""
        return _split_csv(self.RSS_STATS_FEED_URLS)

    def archive_configured(self) -> bool:
        return bool(self.ARCHIVE_BUCKET)

    def telegram_configured(self) -> bool:
        return bool(self.TELEGRAM_BOT_TOKEN and self.TELEGRAM_CHAT_ID)


settings = Settings()
