from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class Story(BaseModel):
    headline: str = Field(min_length=1, description="Story or post headline")
    link: str = Field(min_length=1, description="A link to the post or story")
    date_posted: str = Field(
        description="The date the story or post was published"
    )


class StoriesPayload(BaseModel):
    stories: list[Story] = Field(
        default_factory=list,
        description="A list of today's AI or LLM-related stories",
    )


class StoryDigest(BaseModel):
    fetched_at: datetime = Field(description="UTC timestamp of the aggregation")
    sources: list[str] = Field(
        default_factory=list, description="Source identifiers that were queried"
    )
    stories: list[Story] = Field(default_factory=list)
