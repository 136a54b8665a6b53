"""
Entity catalog.

Names the four persisted collections, the closed sector enumeration, the
document models and the write-time schema validators used by the policy.
"""

from .models import (
    Collection, ProfessionalSector, PROFESSIONAL_SECTORS,
    User, Recommendation, ChatMessage, SummarizedFeedbackLog
)
from .validators import (
    is_valid_email, is_valid_sector,
    validate_user, validate_recommendation, validate_feedback_log
)

__all__ = [
    "Collection", "ProfessionalSector", "PROFESSIONAL_SECTORS",
    "User", "Recommendation", "ChatMessage", "SummarizedFeedbackLog",
    "is_valid_email", "is_valid_sector",
    "validate_user", "validate_recommendation", "validate_feedback_log",
]
