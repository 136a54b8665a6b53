"""
FeedBacks service: professional recommendations, moderated chat and
summarized feedback over a policy-gated document store.
"""

import json
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import Body, Depends, Header, Query
from fastapi.responses import StreamingResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import PermissionDeniedError, ValidationError
from shared.logging import set_principal_context

from .ai.flows import ModerationClient, SummarizationClient
from .auth.principal import PrincipalResolver
from .catalog.models import (
    PROFESSIONAL_SECTORS, ChatMessage, ChatMessageCreateRequest, Collection, DocumentListResponse,
    DocumentResponse, FeedbackSubmitRequest, FeedbackSubmitResponse,
    RecommendationCreateRequest, User
)
from .rules.models import PolicyCheckRequest, PolicyCheckResponse, Principal
from .rules.policy import create_policy_engine
from .services import (
    ChatDataService, FeedbackDataService, RecommendationDataService, UserDataService, display_name
)
from .store.memory import DocumentStore


class FeedbacksService(BaseService):
    """FeedBacks service implementation."""

    def __init__(self,
                 config: Optional[ServiceConfig] = None,
                 moderation: Optional[ModerationClient] = None,
                 summarizer: Optional[SummarizationClient] = None):
        super().__init__("feedbacks", 8020, config)

        self.policy = create_policy_engine(self.config.feedback_strip_whitespace)
        self.store = DocumentStore(
            self.policy,
            metrics=self.metrics,
            subscriber_queue_size=self.config.chat_subscriber_queue_size
        )
        self.principals = PrincipalResolver.from_config(self.config)
        self.moderation = moderation or ModerationClient.from_config(self.config, self.metrics)
        self.summarizer = summarizer or SummarizationClient.from_config(self.config, self.metrics)

        self.users = UserDataService(self.store)
        self.recommendations = RecommendationDataService(self.store)
        self.chat = ChatDataService(self.store, self.moderation)
        self.feedback = FeedbackDataService(self.store, self.summarizer)

        self._setup_feedbacks_routes()

    def _setup_feedbacks_routes(self):
        """Set up FeedBacks-specific routes."""

        async def current_principal(authorization: Optional[str] = Header(None)) -> Principal:
            principal = self.principals.resolve_header(authorization)
            set_principal_context(principal.uid, principal.is_anonymous)
            return principal

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "feedbacks",
                "message": "FeedBacks - professional recommendations, chat and feedback",
                "version": "1.0.0",
                "capabilities": ["access_policy", "moderated_chat", "feedback_summaries"]
            }

        @self.app.get("/sectors")
        async def list_sectors():
            """Professional sectors a user or recommendation may belong to."""
            return {"sectors": PROFESSIONAL_SECTORS}

        @self.app.post("/policy/check", response_model=PolicyCheckResponse)
        async def check_policy(request: PolicyCheckRequest):
            """Evaluate a single request against the access policy without touching data."""
            result = self.policy.evaluate(request.to_policy_request())
            self.metrics.record_policy_decision(
                request.collection,
                request.operation.value,
                result.allowed,
                result.evaluation_time_ms / 1000
            )
            return PolicyCheckResponse(
                allowed=result.allowed,
                reason=result.reason,
                matched_rules=result.matched_rules
            )

        # Generic document boundary

        @self.app.get("/documents/{collection}", response_model=DocumentListResponse)
        async def list_documents(
            collection: str,
            order_by: Optional[str] = Query(None),
            descending: bool = Query(False),
            limit: Optional[int] = Query(None, ge=1, le=1000),
            principal: Principal = Depends(current_principal)
        ):
            snapshots = await self.store.list(principal, collection, order_by, descending, limit)
            documents = [DocumentResponse(**snap.to_dict()) for snap in snapshots]
            return DocumentListResponse(collection=collection, documents=documents, total=len(documents))

        @self.app.post("/documents/{collection}", status_code=201)
        async def add_document(
            collection: str,
            data: Dict[str, Any] = Body(...),
            principal: Principal = Depends(current_principal)
        ):
            if collection == Collection.CHAT_MESSAGES.value:
                doc_id = await self._add_chat_document(principal, data)
            else:
                doc_id = await self.store.add(principal, collection, data)
            return {"id": doc_id, "collection": collection}

        @self.app.get("/documents/{collection}/{doc_id}", response_model=DocumentResponse)
        async def get_document(
            collection: str,
            doc_id: str,
            principal: Principal = Depends(current_principal)
        ):
            snapshot = await self.store.get(principal, collection, doc_id)
            return DocumentResponse(**snapshot.to_dict())

        @self.app.put("/documents/{collection}/{doc_id}", response_model=DocumentResponse)
        async def set_document(
            collection: str,
            doc_id: str,
            data: Dict[str, Any] = Body(...),
            merge: bool = Query(False),
            principal: Principal = Depends(current_principal)
        ):
            if collection == Collection.CHAT_MESSAGES.value:
                raise PermissionDeniedError(
                    "Chat messages are only created through moderation",
                    details={"collection": collection}
                )
            snapshot = await self.store.set(principal, collection, doc_id, data, merge=merge)
            return DocumentResponse(**snapshot.to_dict())

        @self.app.patch("/documents/{collection}/{doc_id}", response_model=DocumentResponse)
        async def update_document(
            collection: str,
            doc_id: str,
            changes: Dict[str, Any] = Body(...),
            principal: Principal = Depends(current_principal)
        ):
            snapshot = await self.store.update(principal, collection, doc_id, changes)
            return DocumentResponse(**snapshot.to_dict())

        @self.app.delete("/documents/{collection}/{doc_id}", status_code=204)
        async def delete_document(
            collection: str,
            doc_id: str,
            principal: Principal = Depends(current_principal)
        ):
            await self.store.delete(principal, collection, doc_id)

        # Recommendations

        @self.app.post("/recommendations", status_code=201)
        async def create_recommendation(
            request: RecommendationCreateRequest,
            principal: Principal = Depends(current_principal)
        ):
            author = await self._author_profile(principal)
            recommendation_id = await self.recommendations.add_recommendation(
                principal, author, request.text, request.sector
            )
            return {"id": recommendation_id}

        @self.app.get("/recommendations")
        async def list_recommendations(
            limit: Optional[int] = Query(None, ge=1, le=1000),
            principal: Principal = Depends(current_principal)
        ):
            recommendations = await self.recommendations.list_recommendations(principal, limit)
            return {
                "recommendations": [r.model_dump(mode="json", by_alias=True) for r in recommendations],
                "total": len(recommendations)
            }

        # Chat

        @self.app.post("/chat/messages", status_code=201)
        async def post_chat_message(
            request: ChatMessageCreateRequest,
            principal: Principal = Depends(current_principal)
        ):
            user_name = request.user_name
            if not user_name:
                user_name = display_name(principal, await self._find_profile(principal))
            message_id = await self.chat.add_message(principal, user_name, request.text)
            return {"id": message_id}

        @self.app.get("/chat/messages")
        async def list_chat_messages(principal: Principal = Depends(current_principal)):
            messages = await self.chat.list_messages(principal)
            return {
                "messages": [m.model_dump(mode="json", by_alias=True) for m in messages],
                "total": len(messages)
            }

        @self.app.get("/chat/stream")
        async def stream_chat_messages(
            max_updates: Optional[int] = Query(None, ge=1, description="Close after this many updates"),
            principal: Principal = Depends(current_principal)
        ):
            """Server-Sent Events stream of the whole conversation, oldest first."""
            # Subscribing authorizes, so a denial is a plain 403 before any event is sent.
            stream = await self.chat.stream_messages(principal)
            return StreamingResponse(
                self._sse_stream_generator(stream, max_updates),
                media_type="text/event-stream",
                headers={
                    "Cache-Control": "no-cache",
                    "Connection": "keep-alive"
                }
            )

        # Feedback

        @self.app.post("/feedback", response_model=FeedbackSubmitResponse, status_code=201)
        async def submit_feedback(
            request: FeedbackSubmitRequest,
            principal: Principal = Depends(current_principal)
        ):
            log = await self.feedback.submit_feedback(principal, request.feedback_text)
            return FeedbackSubmitResponse(id=log.id, summary=log.summary_text)

        @self.app.get("/feedback/logs")
        async def list_feedback_logs(
            limit: Optional[int] = Query(None, ge=1, le=1000),
            principal: Principal = Depends(current_principal)
        ):
            logs = await self.feedback.list_feedback_logs(principal, limit)
            return {
                "logs": [log.model_dump(mode="json", by_alias=True) for log in logs],
                "total": len(logs)
            }

    async def _find_profile(self, principal: Principal) -> Optional[User]:
        if not principal.is_authenticated:
            return None
        return await self.users.get_user(principal, principal.uid)

    async def _add_chat_document(self, principal: Principal, data: Dict[str, Any]) -> str:
        """Raw chat documents go through moderation like any other message."""
        if data.get("userId") != principal.uid:
            raise PermissionDeniedError(details={"collection": Collection.CHAT_MESSAGES.value})
        text = data.get("text")
        if not isinstance(text, str) or not text:
            raise ValidationError("Chat message text must be a non-empty string")
        user_name = data.get("userName")
        if not isinstance(user_name, str) or not user_name:
            user_name = display_name(principal, await self._find_profile(principal))
        return await self.chat.add_message(principal, user_name, text)

    async def _author_profile(self, principal: Principal) -> User:
        """Profile used to sign a recommendation.

        Principals without a profile get a placeholder author; whether they
        may post at all is left to the access policy.
        """
        profile = await self._find_profile(principal)
        if profile is not None:
            return profile
        return User(id=principal.uid or "", name=display_name(principal), email="")

    async def _sse_stream_generator(self,
                                    stream: AsyncIterator[List[ChatMessage]],
                                    max_updates: Optional[int] = None):
        """SSE stream generator."""
        sent = 0
        try:
            async for messages in stream:
                payload = [m.model_dump(mode="json", by_alias=True) for m in messages]
                yield f"event: messages\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"
                sent += 1
                if max_updates is not None and sent >= max_updates:
                    break
        finally:
            await stream.aclose()
            self.logger.info("Chat stream closed", updates=sent)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check AI flow availability."""
        dependencies = {}
        for client in (self.moderation, self.summarizer):
            state = client.circuit_breaker.state.value
            dependencies[client.flow_name] = "ok" if state == "closed" else state
        return dependencies

    async def start(self):
        """Start FeedBacks service components."""
        self.logger.info(
            "FeedBacks service started",
            rules=len(self.policy.rules),
            ai_service_url=self.config.ai_service_url
        )

    async def stop(self):
        """Stop FeedBacks service components."""
        self.store.subscriptions.close_all()
        self.logger.info("FeedBacks service stopped")


def create_app():
    """Create FeedBacks service application."""
    service = FeedbacksService()
    return service.app


if __name__ == "__main__":
    service = FeedbacksService()
    service.run()
