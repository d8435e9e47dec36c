from .story import StoriesPayload, Story, StoryDigest

__all__ = ["StoriesPayload", "Story", "StoryDigest"]
