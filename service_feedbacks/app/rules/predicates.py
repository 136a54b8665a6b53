"""
Predicate combinators for access rules.

A predicate is a named boolean function of a PolicyRequest. Predicates
compose with ``&``, ``|`` and ``~`` so the rule table reads close to the
decision it encodes::

    is_registered & owns_field("userId") & schema_valid(validate_recommendation)
"""

from typing import Any, Callable, List, Mapping, Optional

from shared.logging import get_logger
from .models import PolicyRequest

logger = get_logger("feedbacks.rules.predicates")

Validator = Callable[[Mapping[str, Any]], List[str]]


class Predicate:
    """Named boolean check over a policy request."""

    def __init__(self, name: str, check: Callable[[PolicyRequest], bool]):
        self.name = name
        self._check = check

    def __call__(self, request: PolicyRequest) -> bool:
        return bool(self._check(request))

    def __and__(self, other: "Predicate") -> "Predicate":
        return Predicate(
            f"({self.name} and {other.name})",
            lambda request: self(request) and other(request)
        )

    def __or__(self, other: "Predicate") -> "Predicate":
        return Predicate(
            f"({self.name} or {other.name})",
            lambda request: self(request) or other(request)
        )

    def __invert__(self) -> "Predicate":
        return Predicate(f"not {self.name}", lambda request: not self(request))

    def __repr__(self) -> str:
        return f"Predicate({self.name})"


def all_of(*predicates: Predicate) -> Predicate:
    if not predicates:
        return ALWAYS
    combined = predicates[0]
    for predicate in predicates[1:]:
        combined = combined & predicate
    return combined


def any_of(*predicates: Predicate) -> Predicate:
    if not predicates:
        return NEVER
    combined = predicates[0]
    for predicate in predicates[1:]:
        combined = combined | predicate
    return combined


ALWAYS = Predicate("always", lambda request: True)
NEVER = Predicate("never", lambda request: False)

is_authenticated = Predicate(
    "is_authenticated",
    lambda request: request.principal.is_authenticated
)

is_registered = Predicate(
    "is_registered",
    lambda request: request.principal.is_registered
)


def _document_body(request: PolicyRequest, source: str) -> Optional[Mapping[str, Any]]:
    if source == "incoming":
        return request.incoming
    if source == "existing":
        return request.existing
    raise ValueError(f"Unknown document source: {source}")


owns_document_id = Predicate(
    "owns_document_id",
    lambda request: (
        request.principal.uid is not None
        and request.document_id == request.principal.uid
    )
)


def owns_field(field: str, source: str = "incoming") -> Predicate:
    """Principal's uid equals ``field`` of the incoming or existing document."""

    def check(request: PolicyRequest) -> bool:
        body = _document_body(request, source)
        if request.principal.uid is None or body is None:
            return False
        return body.get(field) == request.principal.uid

    return Predicate(f"owns_{source}.{field}", check)


def schema_valid(validator: Validator, name: Optional[str] = None) -> Predicate:
    """Incoming document passes ``validator``."""

    def check(request: PolicyRequest) -> bool:
        if request.incoming is None:
            return False
        violations = validator(request.incoming)
        if violations:
            logger.debug(
                "Schema violations",
                collection=request.collection,
                violations=violations
            )
        return not violations

    return Predicate(name or f"schema_valid.{validator.__name__}", check)
