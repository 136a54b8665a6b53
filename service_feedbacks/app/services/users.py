"""
Profile documents in the ``users`` collection.
"""

from typing import Any, Dict, Optional

from shared.logging import get_logger
from ..catalog.models import Collection, User
from ..rules.models import Principal
from ..store.memory import DocumentStore

GUEST_DISPLAY_NAME = "Usuario Invitado"


def display_name(principal: Principal, user: Optional[User] = None) -> str:
    """Name shown for a principal; anonymous visitors are guests."""
    if user is not None:
        return user.name
    if principal.is_anonymous:
        return GUEST_DISPLAY_NAME
    return principal.uid or GUEST_DISPLAY_NAME


class UserDataService:
    """Reads and writes user profiles keyed by the owner's uid."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self.logger = get_logger("feedbacks.services.users")

    async def get_user(self, principal: Principal, user_id: str) -> Optional[User]:
        snapshot = await self.store.get(principal, Collection.USERS.value, user_id)
        return User.parse_snapshot(snapshot)

    async def save_user(self, principal: Principal, user: User) -> User:
        """Create or merge the profile; an unset sector is stored as null."""
        data = {
            "name": user.name,
            "email": user.email,
            "professionalSector": user.professional_sector.value if user.professional_sector else None
        }
        snapshot = await self.store.set(principal, Collection.USERS.value, user.id, data, merge=True)
        self.logger.info("User profile saved", user_id=user.id)
        return User.from_document(snapshot.id, snapshot.data)

    async def update_user(self, principal: Principal, user_id: str, changes: Dict[str, Any]) -> User:
        snapshot = await self.store.update(principal, Collection.USERS.value, user_id, changes)
        return User.from_document(snapshot.id, snapshot.data)
