"""Client-side data access for each feature, on top of the document store."""

from .chat import ChatDataService
from .feedback import FeedbackDataService
from .recommendations import RecommendationDataService
from .users import GUEST_DISPLAY_NAME, UserDataService, display_name

__all__ = [
    "ChatDataService",
    "FeedbackDataService",
    "RecommendationDataService",
    "UserDataService",
    "GUEST_DISPLAY_NAME",
    "display_name",
]
