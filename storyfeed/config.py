from functools import lru_cache
from typing import Any

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_APIFY_ACTOR_ID = (
    "kaitoeasyapi~twitter-x-data-tweet-scraper-pay-per-result-cheapest"
)
DEFAULT_TWEET_MAX_ITEMS = 20
MAX_TWEET_MAX_ITEMS = 100


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    http_timeout: float = Field(30.0, gt=0, alias="HTTP_TIMEOUT")
    http_max_connections: int = Field(10, ge=1, alias="HTTP_MAX_CONNECTIONS")
    http_max_keepalive: int = Field(5, ge=1, alias="HTTP_MAX_KEEPALIVE")
    http_user_agent: str = Field(
        "storyfeed/0.1 (+https://example.com; contact=admin@example.com)",
        alias="HTTP_USER_AGENT",
    )

    firecrawl_api_key: str | None = Field(default=None, alias="FIRECRAWL_API_KEY")
    firecrawl_base_url: HttpUrl = Field(
        "https://api.firecrawl.dev", alias="FIRECRAWL_BASE_URL"
    )
    firecrawl_poll_interval: float = Field(
        2.0, ge=0, alias="FIRECRAWL_POLL_INTERVAL"
    )
    firecrawl_max_polls: int = Field(60, ge=1, alias="FIRECRAWL_MAX_POLLS")

    apify_api_token: str | None = Field(default=None, alias="APIFY_API_TOKEN")
    apify_twitter_actor_id: str = Field(
        DEFAULT_APIFY_ACTOR_ID, alias="APIFY_TWITTER_ACTOR_ID"
    )
    apify_base_url: HttpUrl = Field(
        "https://api.apify.com/v2", alias="APIFY_BASE_URL"
    )
    apify_twitter_max_items: int = Field(
        DEFAULT_TWEET_MAX_ITEMS, alias="APIFY_TWITTER_MAX_ITEMS"
    )
    tweet_lookback_hours: int = Field(24, ge=1, alias="TWEET_LOOKBACK_HOURS")

    enable_page_extraction: bool = Field(True, alias="ENABLE_PAGE_EXTRACTION")
    sources: list[str] = Field(default_factory=list, alias="SOURCES")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    @field_validator("apify_api_token", "firecrawl_api_key", mode="before")
    @classmethod
    def _strip_secret(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("apify_twitter_actor_id", mode="before")
    @classmethod
    def _default_actor(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_APIFY_ACTOR_ID
        return value.strip() if isinstance(value, str) else value

    @field_validator("apify_twitter_max_items", mode="before")
    @classmethod
    def _clamp_max_items(cls, value: Any) -> int:
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return DEFAULT_TWEET_MAX_ITEMS
        if parsed <= 0:
            return DEFAULT_TWEET_MAX_ITEMS
        return min(parsed, MAX_TWEET_MAX_ITEMS)

    @property
    def has_apify_credentials(self) -> bool:
        return bool(self.apify_api_token and self.apify_twitter_actor_id)


@lru_cache
def get_settings() -> Settings:
    return Settings()
