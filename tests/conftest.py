from datetime import datetime, timezone

import pytest

from storyfeed.config import Settings

FIXED_NOW = datetime(2024, 1, 2, 12, 0, 0, tzinfo=timezone.utc)
APIFY_TOKEN = "apify-token"
APIFY_URL = (
    "https://api.apify.com/v2/acts/"
    "kaitoeasyapi~twitter-x-data-tweet-scraper-pay-per-result-cheapest/"
    "run-sync-get-dataset-items"
)
FIRECRAWL_EXTRACT_URL = "https://api.firecrawl.dev/v1/extract"


def make_settings(**overrides) -> Settings:
    values = {
        "apify_api_token": APIFY_TOKEN,
        "firecrawl_api_key": "fc-key",
        "firecrawl_poll_interval": 0,
        "sources": [],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW
