"""Remote data ingestors for the RID live-tracking service."""

from .rid import API_KEY_HEADER, FeedError, RIDFeedClient

__all__ = ["API_KEY_HEADER", "FeedError", "RIDFeedClient"]
