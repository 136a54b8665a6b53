"""
Rule data models for the access policy.
"""

from typing import Dict, Any, Optional, List, FrozenSet, TYPE_CHECKING
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .predicates import Predicate


class Operation(str, Enum):
    """Operations a principal can request on a document or collection."""
    CREATE = "create"
    READ = "read"
    LIST = "list"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class Principal:
    """Identity issuing a request.

    ``uid`` is None for unauthenticated clients. Anonymous guests have a uid
    but ``is_anonymous`` set.
    """
    uid: Optional[str] = None
    is_anonymous: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.uid is not None

    @property
    def is_registered(self) -> bool:
        """Authenticated and not an anonymous guest."""
        return self.uid is not None and not self.is_anonymous

    @property
    def role(self) -> str:
        if self.uid is None:
            return "none"
        return "anon" if self.is_anonymous else "auth"

    @classmethod
    def unauthenticated(cls) -> "Principal":
        return cls()

    @classmethod
    def anonymous(cls, uid: str) -> "Principal":
        return cls(uid=uid, is_anonymous=True)

    @classmethod
    def user(cls, uid: str) -> "Principal":
        return cls(uid=uid, is_anonymous=False)


@dataclass
class PolicyRequest:
    """Everything a rule may look at.

    For updates ``incoming`` is the document as it would be after the write
    (existing fields merged with the changes).
    """
    principal: Principal
    operation: Operation
    collection: str
    document_id: Optional[str] = None
    existing: Optional[Dict[str, Any]] = None
    incoming: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Rule:
    """Allow grant for some operations on one collection."""
    rule_id: str
    collection: str
    operations: FrozenSet[Operation]
    condition: "Predicate"
    description: Optional[str] = None
    enabled: bool = True

    def covers(self, operation: Operation) -> bool:
        return operation in self.operations


@dataclass
class EvaluationResult:
    """Result of rule evaluation."""
    allowed: bool
    reason: Optional[str] = None
    matched_rules: List[str] = field(default_factory=list)
    evaluation_time_ms: float = 0.0


class PolicyCheckRequest(BaseModel):
    """Request model for an ad-hoc policy check."""
    model_config = ConfigDict(populate_by_name=True)

    uid: Optional[str] = Field(None, description="Principal uid; omit for unauthenticated")
    is_anonymous: bool = Field(False, alias="isAnonymous")
    operation: Operation
    collection: str
    document_id: Optional[str] = Field(None, alias="documentId")
    existing: Optional[Dict[str, Any]] = Field(None, description="Stored document, for update/delete/read")
    incoming: Optional[Dict[str, Any]] = Field(None, description="Document after the write")

    def to_policy_request(self) -> PolicyRequest:
        return PolicyRequest(
            principal=Principal(uid=self.uid, is_anonymous=self.is_anonymous),
            operation=self.operation,
            collection=self.collection,
            document_id=self.document_id,
            existing=self.existing,
            incoming=self.incoming
        )


class PolicyCheckResponse(BaseModel):
    """Response model for a policy check."""
    model_config = ConfigDict(populate_by_name=True)

    allowed: bool
    reason: Optional[str] = None
    matched_rules: List[str] = Field(default_factory=list, alias="matchedRules")
