"""Service layer: search and feedback backends."""

from .feedback_client import FeedbackClient, FeedbackResponse, Rating
from .search_client import SearchClient, SearchResult

__all__ = [
    "FeedbackClient",
    "FeedbackResponse",
    "Rating",
    "SearchClient",
    "SearchResult",
]
