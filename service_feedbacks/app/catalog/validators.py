"""
Write-time schema validators.

Each validator returns the list of violations found in a document body;
an empty list means the body is acceptable. Validators never raise and know
nothing about who is writing.
"""

import re
from typing import Any, List, Mapping

from .models import PROFESSIONAL_SECTORS

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and EMAIL_PATTERN.match(value) is not None


def is_valid_sector(value: Any, allow_null: bool = False) -> bool:
    if value is None:
        return allow_null
    return isinstance(value, str) and value in PROFESSIONAL_SECTORS


def validate_user(data: Mapping[str, Any]) -> List[str]:
    violations = []
    if not is_valid_email(data.get("email")):
        violations.append("email is not a valid address")
    if not is_valid_sector(data.get("professionalSector"), allow_null=True):
        violations.append("professionalSector is not a known sector")
    return violations


def validate_recommendation(data: Mapping[str, Any]) -> List[str]:
    if not is_valid_sector(data.get("sector")):
        return ["sector is missing or not a known sector"]
    return []


def validate_feedback_log(data: Mapping[str, Any], strip_whitespace: bool = False) -> List[str]:
    """Check ``originalFeedbackText`` is a non-empty string.

    With ``strip_whitespace`` the length is measured after stripping, which
    also rejects whitespace-only text.
    """
    text = data.get("originalFeedbackText")
    if not isinstance(text, str):
        return ["originalFeedbackText must be a string"]
    if strip_whitespace:
        text = text.strip()
    if len(text) == 0:
        return ["originalFeedbackText must not be empty"]
    return []

