"""
Entity catalog: collections, the sector enumeration and document models.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from shared.logging import get_logger

logger = get_logger("feedbacks.catalog")


class Collection(str, Enum):
    """Persisted collections. Values are the wire names."""
    USERS = "users"
    RECOMMENDATIONS = "recommendations"
    CHAT_MESSAGES = "chatMessages"
    FEEDBACK_LOGS = "summarizedFeedbackLogs"


class ProfessionalSector(str, Enum):
    """Closed set of professional categories."""
    TECNOLOGIA = "Tecnología"
    SALUD = "Salud"
    FINANZAS = "Finanzas"
    EDUCACION = "Educación"
    MARKETING = "Marketing"
    ARTES_CREATIVAS = "Artes Creativas"
    INGENIERIA = "Ingeniería"
    LEGAL = "Legal"
    HOSTELERIA = "Hostelería"
    VENTA_MINORISTA = "Venta Minorista"
    MANUFACTURA = "Manufactura"
    OTRO = "Otro"


PROFESSIONAL_SECTORS: List[str] = [sector.value for sector in ProfessionalSector]


class DocumentModel(BaseModel):
    """Base for documents read back from the store."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Document ID")

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]):
        return cls.model_validate({"id": doc_id, **data})

    @classmethod
    def parse_snapshots(cls, snapshots: Iterable[Any]) -> List[Any]:
        """Models for the stored documents that fit this shape.

        The policy only validates some collections, so a stored document may
        lack fields the model needs. Those are logged and skipped.
        """
        parsed = []
        for snapshot in snapshots:
            if not snapshot.exists:
                continue
            try:
                parsed.append(cls.from_document(snapshot.id, snapshot.data))
            except pydantic.ValidationError as e:
                logger.warning(
                    "Skipping malformed document",
                    model=cls.__name__,
                    document_id=snapshot.id,
                    errors=e.error_count()
                )
        return parsed

    @classmethod
    def parse_snapshot(cls, snapshot: Any) -> Optional[Any]:
        """Model for one snapshot, or None when it is missing or malformed."""
        parsed = cls.parse_snapshots([snapshot])
        return parsed[0] if parsed else None

    def to_document(self) -> Dict[str, Any]:
        """Body as stored, without the document ID."""
        return self.model_dump(by_alias=True, exclude={"id"})


class User(DocumentModel):
    """Profile of a registered principal; ``id`` is the principal's uid."""
    name: str
    email: str
    professional_sector: Optional[ProfessionalSector] = Field(None, alias="professionalSector")


class Recommendation(DocumentModel):
    """A professional recommendation.

    ``user_name`` and ``user_sector`` are snapshots of the author's profile
    at post time and are not kept in sync with later profile edits.
    """
    user_id: str = Field(..., alias="userId")
    user_name: str = Field(..., alias="userName")
    user_sector: Optional[ProfessionalSector] = Field(None, alias="userSector")
    text: str
    sector: ProfessionalSector
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class ChatMessage(DocumentModel):
    user_id: str = Field(..., alias="userId")
    user_name: str = Field(..., alias="userName")
    text: str
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    is_moderated: bool = Field(False, alias="isModerated")


class SummarizedFeedbackLog(DocumentModel):
    original_feedback_text: str = Field(..., alias="originalFeedbackText")
    summary_text: str = Field(..., alias="summaryText")
    user_id: Optional[str] = Field(None, alias="userId")
    created_at: Optional[datetime] = Field(None, alias="createdAt")


# Request payloads accepted by the API

class UserProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, description="Display name")
    email: str = Field(..., description="Contact email")
    professional_sector: Optional[str] = Field(None, alias="professionalSector")


class RecommendationCreateRequest(BaseModel):
    text: str = Field(..., min_length=10, max_length=1000, description="Recommendation text")
    # Left as a plain string so unknown sectors reach the policy and are denied there.
    sector: str = Field(..., description="Sector the recommendation belongs to")


class ChatMessageCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1)
    user_name: Optional[str] = Field(None, alias="userName", description="Falls back to the profile name")


class FeedbackSubmitRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    feedback_text: str = Field(..., min_length=1, alias="feedbackText")


class FeedbackSubmitResponse(BaseModel):
    id: str
    summary: str


class DocumentResponse(BaseModel):
    id: str
    collection: str
    exists: bool
    data: Optional[Dict[str, Any]] = None


class DocumentListResponse(BaseModel):
    collection: str
    documents: List[DocumentResponse]
    total: int
