import json
import logging

import httpx
import pytest
import respx

from storyfeed.errors import TweetRetrievalError
from storyfeed.services.tweets import (
    TweetService,
    format_apify_date,
    map_tweet_items_to_stories,
)

from .conftest import APIFY_TOKEN, APIFY_URL, FIXED_NOW, make_settings

FALLBACK = "2024-01-01T12:00:00.000Z"


def test_later_item_wins_when_links_collide() -> None:
    items = [
        {"id": "1", "text": "first take", "url": "https://x.com/a/status/1"},
        {"id": "2", "text": "other", "url": "https://x.com/a/status/2"},
        {"id": "1", "text": "edited take", "url": "https://x.com/a/status/1"},
    ]

    stories = map_tweet_items_to_stories(items, FALLBACK)

    assert [story.link for story in stories] == [
        "https://x.com/a/status/1",
        "https://x.com/a/status/2",
    ]
    assert stories[0].headline == "edited take"


def test_items_without_link_or_text_are_dropped() -> None:
    items = [
        {"text": "no link at all"},
        {"id": "3", "text": "   "},
        {"id": "4", "type": "retweet", "text": "not original"},
        "garbage",
        None,
        {"id": "5", "full_text": "  from full_text  "},
        {"text": "secondary url", "url": " ", "twitterUrl": "https://twitter.com/a/status/6"},
    ]

    stories = map_tweet_items_to_stories(items, FALLBACK)

    assert [(s.headline, s.link) for s in stories] == [
        ("from full_text", "https://x.com/i/status/5"),
        ("secondary url", "https://twitter.com/a/status/6"),
    ]


def test_dates_are_normalized_or_fall_back_to_window_start() -> None:
    items = [
        {"id": "1", "text": "iso", "createdAt": "2024-01-01T00:00:00Z"},
        {"id": "2", "text": "twitter style", "created_at": "Mon Jan 01 08:30:15 +0000 2024"},
        {"id": "3", "text": "bad date", "date": "not a date"},
        {"id": "4", "text": "no date"},
        {"id": "5", "text": "millis", "createdAt": "2024-01-01T10:11:12.345Z"},
    ]

    stories = map_tweet_items_to_stories(items, FALLBACK)

    assert [story.date_posted for story in stories] == [
        "2024-01-01T00:00:00.000Z",
        "2024-01-01T08:30:15.000Z",
        FALLBACK,
        FALLBACK,
        "2024-01-01T10:11:12.345Z",
    ]


def test_format_apify_date() -> None:
    assert format_apify_date(FIXED_NOW) == "2024-01-02_12:00:00_UTC"


@pytest.mark.asyncio
async def test_fetch_tweets_builds_windowed_query(fixed_clock) -> None:
    settings = make_settings(apify_twitter_max_items=5)
    async with httpx.AsyncClient() as client:
        service = TweetService(settings=settings, client=client, clock=fixed_clock)
        with respx.mock(assert_all_called=True) as mock:
            route = mock.post(APIFY_URL, params={"token": APIFY_TOKEN}).respond(
                200,
                json=[
                    {
                        "id": "1",
                        "text": "hi",
                        "url": "https://x.com/openai/status/1",
                        "createdAt": "2024-01-01T00:00:00Z",
                    }
                ],
            )
            stories = await service.fetch_tweets("openai")

    sent = json.loads(route.calls.last.request.content)
    assert sent == {
        "from": "openai",
        "maxItems": 5,
        "queryType": "Latest",
        "since": "2024-01-01_12:00:00_UTC",
        "until": "2024-01-02_12:00:00_UTC",
        "include:nativeretweets": False,
        "filter:replies": False,
    }
    assert len(stories) == 1
    assert stories[0].date_posted == "2024-01-01T00:00:00.000Z"


@pytest.mark.asyncio
async def test_fetch_tweets_reads_nested_items_and_truncates(fixed_clock) -> None:
    settings = make_settings(apify_twitter_max_items=2)
    items = [{"id": str(n), "text": f"post {n}"} for n in range(4)]
    async with httpx.AsyncClient() as client:
        service = TweetService(settings=settings, client=client, clock=fixed_clock)
        with respx.mock(assert_all_called=True) as mock:
            mock.post(APIFY_URL, params={"token": APIFY_TOKEN}).respond(
                200, json={"items": items}
            )
            stories = await service.fetch_tweets("openai")

    assert [story.headline for story in stories] == ["post 0", "post 1"]
    assert all(story.date_posted == FALLBACK for story in stories)


@pytest.mark.asyncio
async def test_unexpected_payload_shape_is_empty(fixed_clock, caplog) -> None:
    caplog.set_level(logging.WARNING)
    async with httpx.AsyncClient() as client:
        service = TweetService(settings=make_settings(), client=client, clock=fixed_clock)
        with respx.mock(assert_all_called=True) as mock:
            mock.post(APIFY_URL, params={"token": APIFY_TOKEN}).respond(
                200, json={"data": {"unexpected": True}}
            )
            stories = await service.fetch_tweets("openai")

    assert stories == []
    assert "Unexpected Apify response format" in caplog.text


@pytest.mark.asyncio
async def test_error_status_raises_with_status_and_body(fixed_clock) -> None:
    async with httpx.AsyncClient() as client:
        service = TweetService(settings=make_settings(), client=client, clock=fixed_clock)
        with respx.mock(assert_all_called=True) as mock:
            mock.post(APIFY_URL, params={"token": APIFY_TOKEN}).respond(
                402, text="payment required"
            )
            with pytest.raises(TweetRetrievalError) as excinfo:
                await service.fetch_tweets("openai")

    assert excinfo.value.status_code == 402
    assert excinfo.value.body == "payment required"


@pytest.mark.asyncio
async def test_unconfigured_service_makes_no_request() -> None:
    settings = make_settings(apify_api_token="  ")
    async with httpx.AsyncClient() as client:
        service = TweetService(settings=settings, client=client)
        with respx.mock(assert_all_called=False) as mock:
            route = mock.post(APIFY_URL)
            stories = await service.fetch_tweets("openai")

    assert not service.configured
    assert stories == []
    assert not route.called


@pytest.mark.parametrize(
    ("raw", "expected"), [(None, 20), ("abc", 20), (0, 20), (-3, 20), (50, 50), (500, 100)]
)
def test_max_items_is_clamped(raw, expected) -> None:
    overrides = {} if raw is None else {"apify_twitter_max_items": raw}
    assert make_settings(**overrides).apify_twitter_max_items == expected
