"""
Recommendations posted by registered users.
"""

from typing import Any, Dict, List, Optional

from shared.logging import get_logger
from ..catalog.models import Collection, Recommendation, User
from ..rules.models import Principal
from ..store.documents import SERVER_TIMESTAMP
from ..store.memory import DocumentStore


class RecommendationDataService:

    def __init__(self, store: DocumentStore):
        self.store = store
        self.logger = get_logger("feedbacks.services.recommendations")

    async def list_recommendations(self, principal: Principal, limit: Optional[int] = None) -> List[Recommendation]:
        """Newest first."""
        snapshots = await self.store.list(
            principal, Collection.RECOMMENDATIONS.value, order_by="createdAt", descending=True, limit=limit
        )
        return Recommendation.parse_snapshots(snapshots)

    async def get_recommendation(self, principal: Principal, recommendation_id: str) -> Optional[Recommendation]:
        snapshot = await self.store.get(principal, Collection.RECOMMENDATIONS.value, recommendation_id)
        return Recommendation.parse_snapshot(snapshot)

    async def add_recommendation(self, principal: Principal, author: User, text: str, sector: str) -> str:
        """Post a recommendation.

        The author's name and sector are copied into the document as they
        are now; later profile edits do not touch existing recommendations.
        """
        data = {
            "userId": principal.uid,
            "userName": author.name,
            "userSector": author.professional_sector.value if author.professional_sector else None,
            "text": text,
            "sector": sector,
            "createdAt": SERVER_TIMESTAMP
        }
        recommendation_id = await self.store.add(principal, Collection.RECOMMENDATIONS.value, data)
        self.logger.info("Recommendation posted", recommendation_id=recommendation_id, sector=sector)
        return recommendation_id

    async def update_recommendation(self,
                                    principal: Principal,
                                    recommendation_id: str,
                                    changes: Dict[str, Any]) -> Recommendation:
        snapshot = await self.store.update(
            principal, Collection.RECOMMENDATIONS.value, recommendation_id, changes
        )
        return Recommendation.from_document(snapshot.id, snapshot.data)
