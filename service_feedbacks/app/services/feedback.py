"""
Feedback submission and the summarized feedback log.
"""

from typing import Any, Dict, List, Optional

from shared.logging import get_logger
from ..ai.flows import SummarizationClient
from ..catalog.models import Collection, SummarizedFeedbackLog
from ..rules.models import Principal
from ..store.documents import SERVER_TIMESTAMP
from ..store.memory import DocumentStore


class FeedbackDataService:
    """Summarizes feedback with the AI flow and keeps a log of both texts."""

    def __init__(self, store: DocumentStore, summarizer: SummarizationClient):
        self.store = store
        self.summarizer = summarizer
        self.logger = get_logger("feedbacks.services.feedback")

    async def submit_feedback(self, principal: Principal, feedback_text: str) -> SummarizedFeedbackLog:
        draft = self._log_document(principal, feedback_text, "")
        await self.store.check_create(principal, Collection.FEEDBACK_LOGS.value, draft)
        summary = await self.summarizer.summarize(feedback_text)
        log_id = await self.add_feedback_log(principal, feedback_text, summary)
        return SummarizedFeedbackLog(
            id=log_id,
            original_feedback_text=feedback_text,
            summary_text=summary,
            user_id=principal.uid
        )

    async def add_feedback_log(self, principal: Principal, original_text: str, summary: str) -> str:
        data = self._log_document(principal, original_text, summary)
        log_id = await self.store.add(principal, Collection.FEEDBACK_LOGS.value, data)
        self.logger.info("Feedback logged", log_id=log_id)
        return log_id

    async def list_feedback_logs(self, principal: Principal, limit: Optional[int] = None) -> List[SummarizedFeedbackLog]:
        """Newest first."""
        snapshots = await self.store.list(
            principal, Collection.FEEDBACK_LOGS.value, order_by="createdAt", descending=True, limit=limit
        )
        return SummarizedFeedbackLog.parse_snapshots(snapshots)

    async def get_feedback_log(self, principal: Principal, log_id: str) -> Optional[SummarizedFeedbackLog]:
        snapshot = await self.store.get(principal, Collection.FEEDBACK_LOGS.value, log_id)
        return SummarizedFeedbackLog.parse_snapshot(snapshot)

    @staticmethod
    def _log_document(principal: Principal, original_text: str, summary: str) -> Dict[str, Any]:
        return {
            "originalFeedbackText": original_text,
            "summaryText": summary,
            "userId": principal.uid or None,
            "createdAt": SERVER_TIMESTAMP
        }
