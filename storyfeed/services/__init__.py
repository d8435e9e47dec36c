from .aggregator import SourceAggregator
from .extract import ExtractionService
from .tweets import TweetService

__all__ = ["ExtractionService", "SourceAggregator", "TweetService"]
