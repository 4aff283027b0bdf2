from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    # App Settings
    APP_NAME: str = "Momentmillionär Event Calendar API"
    PROJECT_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: str = "*"  # Comma-separated string or "*"
    TIMEZONE: str = "Europe/Vienna"

    # Rate Limiting (our own API, protects the Notion quota)
    RATE_LIMIT_ENABLED: bool = False
    SYNC_RATE_LIMIT: str = "5/minute"

    # Notion
    NOTION_INTEGRATION_SECRET: str | None = None
    NOTION_PAGE_URL: str | None = None
    NOTION_API_URL: str = "https://api.notion.com/v1"
    NOTION_VERSION: str = "2022-06-28"
    NOTION_TIMEOUT_SECONDS: float = 30.0
    NOTION_DATABASE_NAME: str = "Momente"
    NOTION_PAGINATION_DELAY: float = 0.2

    # Cache
    CACHE_TYPE: str = "inmemory"  # inmemory or redis
    REDIS_URL: str | None = None
    CACHE_PREFIX: str = "momente:"
    EVENTS_CACHE_TTL_MINUTES: int = 30
    CATEGORIES_CACHE_TTL_MINUTES: int = 60
    AUDIENCES_CACHE_TTL_MINUTES: int = 10
    BACKUP_CACHE_TTL_HOURS: int = 24

    # Sync monitor
    SYNC_MONITOR_ENABLED: bool = True
    SYNC_MONITOR_INTERVAL_HOURS: float = 12

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Parse ALLOWED_ORIGINS
    @property
    def allowed_origins_list(self) -> List[str]:
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def notion_configured(self) -> bool:
        return bool(self.NOTION_INTEGRATION_SECRET and self.NOTION_PAGE_URL)

    @property
    def notion_page_id(self) -> str | None:
        from momente.services.notion import extract_page_id

        if not self.NOTION_PAGE_URL:
            return None
        try:
            return extract_page_id(self.NOTION_PAGE_URL)
        except ValueError:
            return None


settings = Settings()
