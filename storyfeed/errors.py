from __future__ import annotations


class SourceFetchError(Exception):
    """A single source could not be turned into stories."""


class ExtractionError(SourceFetchError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


class TweetRetrievalError(SourceFetchError):
    def __init__(self, status_code: int, body: str, reason: str = "") -> None:
        detail = f"{status_code} {reason}".strip()
        super().__init__(f"Apify request failed with {detail}: {body}")
        self.status_code = status_code
        self.body = body
