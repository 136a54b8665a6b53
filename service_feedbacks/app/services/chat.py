"""
Moderated chat.

Every message goes through the moderation flow before it is stored. When
moderation cannot be obtained the message is not written at all.
"""

from typing import AsyncIterator, List

from shared.logging import get_logger
from ..ai.flows import ModerationClient
from ..catalog.models import ChatMessage, Collection
from ..rules.models import Principal
from ..store.documents import SERVER_TIMESTAMP
from ..store.memory import DocumentStore


class ChatDataService:

    def __init__(self, store: DocumentStore, moderation: ModerationClient):
        self.store = store
        self.moderation = moderation
        self.logger = get_logger("feedbacks.services.chat")

    async def add_message(self, principal: Principal, user_name: str, text: str) -> str:
        """Moderate and store a message; the policy is checked before moderation runs."""
        data = {
            "userId": principal.uid,
            "userName": user_name,
            "text": text,
            "isModerated": False,
            "createdAt": SERVER_TIMESTAMP
        }
        await self.store.check_create(principal, Collection.CHAT_MESSAGES.value, data)

        moderation = await self.moderation.moderate(text)
        data["text"] = moderation.moderated_text
        data["isModerated"] = not moderation.is_appropriate
        message_id = await self.store.add(principal, Collection.CHAT_MESSAGES.value, data)
        self.logger.info("Chat message stored", message_id=message_id, moderated=data["isModerated"])
        return message_id

    async def list_messages(self, principal: Principal) -> List[ChatMessage]:
        """Oldest first."""
        snapshots = await self.store.list(principal, Collection.CHAT_MESSAGES.value, order_by="createdAt")
        return ChatMessage.parse_snapshots(snapshots)

    async def stream_messages(self, principal: Principal) -> AsyncIterator[List[ChatMessage]]:
        """Yield the full ordered conversation each time it changes.

        Authorization happens before the first item is produced. The
        subscription is released when the consumer stops iterating.
        """
        subscription = await self.store.subscribe(principal, Collection.CHAT_MESSAGES.value, order_by="createdAt")
        return self._iterate(subscription)

    @staticmethod
    async def _iterate(subscription) -> AsyncIterator[List[ChatMessage]]:
        try:
            async for snapshots in subscription:
                yield ChatMessage.parse_snapshots(snapshots)
        finally:
            subscription.close()
