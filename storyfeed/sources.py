from __future__ import annotations

from urllib.parse import urlsplit

SOCIAL_HOST_SUFFIXES: tuple[str, ...] = ("x.com", "twitter.com")
RESERVED_PATH_SEGMENTS: frozenset[str] = frozenset({"i", "hashtag", "search"})


def extract_twitter_username(source: str) -> str | None:
    """Return the profile handle for an X/Twitter source, or None for any other page."""
    if not isinstance(source, str):
        return None
    candidate = source.strip()
    if not candidate.startswith("http"):
        candidate = f"https://{candidate}"
    try:
        parts = urlsplit(candidate)
        host = (parts.hostname or "").lower()
    except ValueError:
        return None

    if not host.endswith(SOCIAL_HOST_SUFFIXES):
        return None

    segments = [segment for segment in parts.path.split("/") if segment]
    if not segments:
        return None
    first = segments[0]
    if first.lower() in RESERVED_PATH_SEGMENTS:
        return None

    username = first[1:] if first.startswith("@") else first
    return username or None


def is_social_source(source: str) -> bool:
    return extract_twitter_username(source) is not None
