"""
Clients for the external AI flow server (chat moderation, feedback
summarization). Both are opaque collaborators: text in, structured
judgment out.
"""

from .client import FlowClient
from .flows import ModerationClient, ModerationResult, SummarizationClient

__all__ = ["FlowClient", "ModerationClient", "ModerationResult", "SummarizationClient"]
