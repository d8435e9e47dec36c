from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import httpx

from ..config import Settings, get_settings
from ..errors import ExtractionError, SourceFetchError
from ..models.story import Story
from ..sources import extract_twitter_username
from .extract import ExtractionService
from .tweets import TweetService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SourceAggregator:
    settings: Settings | None = None
    client: httpx.AsyncClient | None = None
    tweets: TweetService | None = None
    extraction: ExtractionService | None = None

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()
        if self.tweets is None:
            self.tweets = TweetService(settings=self.settings, client=self.client)
        if self.extraction is None:
            self.extraction = ExtractionService(
                settings=self.settings, client=self.client
            )

    async def scrape_sources(self, sources: Sequence[str] | None = None) -> list[Story]:
        """Query every source once, in order, and return the combined stories.

        A failing source is logged and contributes nothing; it never aborts the run.
        """
        if sources is None:
            sources = self.settings.sources
        if isinstance(sources, str):
            raise TypeError("sources must be a sequence of identifiers, not a string")

        combined: list[Story] = []
        use_twitter = self.tweets.configured
        use_scrape = self.settings.enable_page_extraction
        saw_twitter_source = False
        processed_usernames: set[str] = set()

        for source in sources:
            username = extract_twitter_username(source)
            if username:
                saw_twitter_source = True

            if username and use_twitter:
                normalized = username.lower()
                if normalized in processed_usernames:
                    logger.debug("Already fetched tweets for %s; skipping %s", username, source)
                    continue
                processed_usernames.add(normalized)
                combined.extend(await self._fetch_tweets(username))
                continue

            if username:
                logger.warning(
                    "Skipping X source %s because Apify credentials are not configured.",
                    source,
                )
                continue

            if not use_scrape:
                logger.debug("Page extraction disabled; skipping %s", source)
                continue

            combined.extend(await self._extract_page(source))

        if saw_twitter_source and not use_twitter:
            logger.info(
                "APIFY_API_TOKEN or APIFY_TWITTER_ACTOR_ID not configured; "
                "X sources were skipped."
            )

        logger.info("Collected %d stories from %d sources", len(combined), len(sources))
        logger.debug("Combined stories: %s", combined)
        return combined

    async def _fetch_tweets(self, username: str) -> list[Story]:
        try:
            stories = await self.tweets.fetch_tweets(username)
        except (SourceFetchError, httpx.HTTPError) as exc:
            logger.error("Error fetching tweets for %s: %s", username, exc)
            return []
        except Exception:
            logger.exception("Error fetching tweets for %s", username)
            return []
        if not stories:
            logger.info("No tweets found for username %s.", username)
            return []
        logger.info("Tweets found from username %s", username)
        return stories

    async def _extract_page(self, source: str) -> list[Story]:
        try:
            stories = await self.extraction.extract_stories(source)
        except ExtractionError as exc:
            if exc.is_rate_limited:
                logger.error("Rate limit exceeded for %s. Skipping this source.", source)
            else:
                logger.error("Error scraping source %s: %s", source, exc)
            return []
        except httpx.HTTPError as exc:
            logger.error("Error scraping source %s: %s", source, exc)
            return []
        except Exception:
            logger.exception("Error scraping source %s", source)
            return []
        logger.info("Found %d stories from %s", len(stories), source)
        return stories
