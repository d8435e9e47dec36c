from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Query
from fastapi.responses import ORJSONResponse
from mangum import Mangum

from storyfeed.config import get_settings
from storyfeed.http_client import shutdown_http_client
from storyfeed.models import StoryDigest
from storyfeed.services import SourceAggregator

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Storyfeed AI News API",
    version="0.1.0",
    description=(
        "Today's AI and LLM stories gathered from web pages and X profiles."
    ),
    default_response_class=ORJSONResponse,
)


def get_aggregator() -> SourceAggregator:
    return SourceAggregator()


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/stories/today", tags=["stories"], response_model=StoryDigest)
async def stories_today(
    source: list[str] | None = Query(
        None,
        description="Source URL or X profile; repeat for several. Defaults to SOURCES.",
    ),
    aggregator: SourceAggregator = Depends(get_aggregator),
) -> StoryDigest:
    sources = source if source else list(aggregator.settings.sources)
    stories = await aggregator.scrape_sources(sources)
    return StoryDigest(
        fetched_at=datetime.now(timezone.utc),
        sources=sources,
        stories=stories,
    )


@app.on_event("shutdown")
async def on_shutdown() -> None:
    await shutdown_http_client()


handler = Mangum(app)
