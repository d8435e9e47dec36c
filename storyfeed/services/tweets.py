from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from dateutil import parser as date_parser

from ..config import Settings, get_settings
from ..errors import TweetRetrievalError
from ..http_client import get_http_client
from ..models.story import Story

logger = logging.getLogger(__name__)

STATUS_URL_TEMPLATE = "https://x.com/i/status/{id}"
TWEET_DATE_FIELDS: tuple[str, ...] = ("createdAt", "created_at", "date")
TWEET_LINK_FIELDS: tuple[str, ...] = ("url", "twitterUrl")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class TweetService:
    settings: Settings | None = None
    client: httpx.AsyncClient | None = None
    clock: Callable[[], datetime] = field(default=_utcnow)

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()

    @property
    def configured(self) -> bool:
        return self.settings.has_apify_credentials

    @property
    def endpoint(self) -> str:
        base = str(self.settings.apify_base_url).rstrip("/")
        actor = self.settings.apify_twitter_actor_id
        return f"{base}/acts/{actor}/run-sync-get-dataset-items"

    async def fetch_tweets(self, username: str) -> list[Story]:
        if not self.configured:
            return []
        if not username:
            raise ValueError("username must be a non-empty string")

        max_items = self.settings.apify_twitter_max_items
        now = self.clock()
        lookback_start = now - timedelta(hours=self.settings.tweet_lookback_hours)
        request_payload: dict[str, Any] = {
            "from": username,
            "maxItems": max_items,
            "queryType": "Latest",
            "since": format_apify_date(lookback_start),
            "until": format_apify_date(now),
            "include:nativeretweets": False,
            "filter:replies": False,
        }

        client = self.client or await get_http_client()
        response = await client.post(
            self.endpoint,
            params={"token": self.settings.apify_api_token},
            json=request_payload,
        )
        if not response.is_success:
            raise TweetRetrievalError(
                response.status_code, response.text, response.reason_phrase
            )

        payload = response.json()
        items = _unwrap_items(payload)
        if not isinstance(items, list):
            logger.warning("Unexpected Apify response format: %r", payload)
            return []

        stories = map_tweet_items_to_stories(items, format_iso(lookback_start))
        return stories[:max_items]


def map_tweet_items_to_stories(
    items: Iterable[Any], fallback_date_iso: str
) -> list[Story]:
    deduped: dict[str, Story] = {}

    for item in items:
        if not isinstance(item, dict):
            continue
        if item.get("type") and item.get("type") != "tweet":
            continue

        raw_headline = item.get("text")
        if raw_headline is None:
            raw_headline = item.get("full_text")
        if not isinstance(raw_headline, str) or not raw_headline.strip():
            continue

        link = _first_link(item)
        if not link:
            continue

        date_posted = fallback_date_iso
        raw_date = next(
            (item[key] for key in TWEET_DATE_FIELDS if item.get(key) is not None),
            None,
        )
        parsed = _parse_datetime(raw_date)
        if parsed is not None:
            date_posted = format_iso(parsed)

        deduped[link] = Story(
            headline=raw_headline.strip(),
            link=link,
            date_posted=date_posted,
        )

    return list(deduped.values())


def format_apify_date(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d_%H:%M:%S_UTC")


def format_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    millis = value.microsecond // 1000
    return f"{value.strftime('%Y-%m-%dT%H:%M:%S')}.{millis:03d}Z"


def _unwrap_items(payload: Any) -> Any:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("items", "data"):
            if payload.get(key) is not None:
                return payload[key]
        return []
    return payload


def _first_link(item: dict[str, Any]) -> str | None:
    candidates: list[Any] = [item.get(key) for key in TWEET_LINK_FIELDS]
    tweet_id = item.get("id")
    if tweet_id not in (None, ""):
        candidates.append(STATUS_URL_TEMPLATE.format(id=tweet_id))
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


def _parse_datetime(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = date_parser.parse(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
