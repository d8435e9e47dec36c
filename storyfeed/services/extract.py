from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import httpx
from pydantic import ValidationError

from ..config import Settings, get_settings
from ..errors import ExtractionError
from ..http_client import get_http_client
from ..models.story import StoriesPayload, Story

logger = logging.getLogger(__name__)

STORIES_SCHEMA: dict[str, Any] = StoriesPayload.model_json_schema()
TERMINAL_FAILURE_STATUSES = frozenset({"failed", "cancelled"})


def build_extraction_prompt(source: str, today: date) -> str:
    current_date = f"{today.month}/{today.day}/{today.year}"
    return f"""
Return only today's AI or LLM related story or post headlines and links in JSON format from the page content.
They must be posted today, {current_date}. The format should be:
{{
  "stories": [
    {{
      "headline": "headline1",
      "link": "link1",
      "date_posted": "YYYY-MM-DD"
    }},
    ...
  ]
}}
If there are no AI or LLM stories from today, return {{"stories": []}}.

The source link is {source}.
If a story link is not absolute, prepend {source} to make it absolute.
Return only pure JSON in the specified format (no extra text, no markdown, no ```).
"""


@dataclass(slots=True)
class ExtractionService:
    settings: Settings | None = None
    client: httpx.AsyncClient | None = None
    today: Callable[[], date] = field(default=date.today)

    def __post_init__(self) -> None:
        if self.settings is None:
            self.settings = get_settings()

    @property
    def base_url(self) -> str:
        return str(self.settings.firecrawl_base_url).rstrip("/")

    async def extract_stories(self, source: str) -> list[Story]:
        if not self.settings.firecrawl_api_key:
            raise ExtractionError("FIRECRAWL_API_KEY is not configured")

        client = self.client or await get_http_client()
        headers = {"Authorization": f"Bearer {self.settings.firecrawl_api_key}"}
        body = {
            "urls": [source],
            "prompt": build_extraction_prompt(source, self.today()),
            "schema": STORIES_SCHEMA,
        }
        response = await client.post(
            f"{self.base_url}/v1/extract", json=body, headers=headers
        )
        result = _read_result(response)
        if "data" not in result and result.get("id"):
            result = await self._wait_for_job(client, str(result["id"]), headers)

        data = result.get("data")
        stories = data.get("stories") if isinstance(data, dict) else None
        if not isinstance(stories, list):
            logger.error(
                'Scraped data from %s does not have a "stories" key: %r', source, data
            )
            return []
        return _validate_stories(stories, source)

    async def _wait_for_job(
        self, client: httpx.AsyncClient, job_id: str, headers: dict[str, str]
    ) -> dict[str, Any]:
        url = f"{self.base_url}/v1/extract/{job_id}"
        for _ in range(self.settings.firecrawl_max_polls):
            await asyncio.sleep(self.settings.firecrawl_poll_interval)
            result = _read_result(await client.get(url, headers=headers))
            status = result.get("status")
            if status == "completed":
                return result
            if status in TERMINAL_FAILURE_STATUSES:
                raise ExtractionError(
                    f"Extract job {job_id} {status}: {result.get('error')}"
                )
        raise ExtractionError(
            f"Extract job {job_id} did not complete after "
            f"{self.settings.firecrawl_max_polls} polls"
        )


def _read_result(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if not response.is_success:
        message = response.text
        if isinstance(payload, dict) and payload.get("error"):
            message = str(payload["error"])
        raise ExtractionError(
            f"Request failed with status code {response.status_code}: {message}",
            status_code=response.status_code,
        )
    if not isinstance(payload, dict):
        raise ExtractionError(f"Unexpected extract response: {response.text[:200]}")
    if not payload.get("success", False):
        raise ExtractionError(f"Failed to scrape: {payload.get('error')}")
    return payload


def _validate_stories(records: list[Any], source: str) -> list[Story]:
    stories: list[Story] = []
    for record in records:
        try:
            stories.append(Story.model_validate(record))
        except ValidationError as exc:
            logger.warning("Dropping malformed story from %s: %s", source, exc)
    return stories
