"""
Shared error handling for the FeedBacks services.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from .logging import get_request_id


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class FeedbacksException(Exception):
    """Base exception for FeedBacks services."""

    status_code: int = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=get_request_id(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(FeedbacksException):
    """The bearer token could not be verified."""

    status_code = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class PermissionDeniedError(FeedbacksException):
    """The access policy denied the request.

    Raised for every denial, whether the principal had the wrong role, did
    not own the document, or the document failed schema validation. The
    outward signal never says which.
    """

    status_code = 403

    def __init__(self, message: str = "Missing or insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__("PERMISSION_DENIED", message, details)


class NotFoundError(FeedbacksException):
    """Document does not exist."""

    status_code = 404

    def __init__(self, message: str = "Document not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class ValidationError(FeedbacksException):
    """Request payload is malformed before it ever reaches the policy."""

    status_code = 422

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ServiceUnavailableError(FeedbacksException):
    """An external collaborator (AI flow server) failed or is unreachable."""

    status_code = 503

    def __init__(self, service: str, message: str = "Service unavailable", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("SERVICE_UNAVAILABLE", f"{service}: {message}", details)
