"""
The FeedBacks access policy as a declarative rule table.

| collection             | create                              | read / list   | update                              | delete |
|------------------------|-------------------------------------|---------------|-------------------------------------|--------|
| users                  | registered, owns doc id, valid      | owner (read)  | owner                               | never  |
| recommendations        | registered, owns userId, valid      | anyone        | owns stored userId                  | never  |
| chatMessages           | registered, owns userId             | registered    | never                               | never  |
| summarizedFeedbackLogs | authenticated (guests too), valid   | authenticated | never                               | never  |

Listing users is never granted. Collections without a block here fall to
the engine's default deny.
"""

import functools
from typing import List

from ..catalog.models import Collection
from ..catalog.validators import validate_user, validate_recommendation, validate_feedback_log
from .engine import PolicyEngine
from .models import Operation, Rule
from .predicates import (
    ALWAYS, is_authenticated, is_registered,
    owns_document_id, owns_field, schema_valid
)


def _grant(rule_id: str, collection: Collection, operations, condition, description: str) -> Rule:
    return Rule(
        rule_id=rule_id,
        collection=collection.value,
        operations=frozenset(operations),
        condition=condition,
        description=description
    )


def build_default_rules(strip_feedback_whitespace: bool = False) -> List[Rule]:
    """Return the allow rules of the FeedBacks policy."""
    feedback_validator = functools.partial(
        validate_feedback_log, strip_whitespace=strip_feedback_whitespace
    )

    return [
        # users/{userId}
        _grant(
            "users.create", Collection.USERS, [Operation.CREATE],
            is_registered & owns_document_id & schema_valid(validate_user),
            "Registered principals create their own profile"
        ),
        _grant(
            "users.read", Collection.USERS, [Operation.READ],
            owns_document_id,
            "Profiles are private to their owner"
        ),
        _grant(
            "users.update", Collection.USERS, [Operation.UPDATE],
            owns_document_id,
            "Owners edit their profile"
        ),

        # recommendations/{recommendationId}
        _grant(
            "recommendations.read", Collection.RECOMMENDATIONS, [Operation.READ, Operation.LIST],
            ALWAYS,
            "Recommendations are public"
        ),
        _grant(
            "recommendations.create", Collection.RECOMMENDATIONS, [Operation.CREATE],
            is_registered & owns_field("userId") & schema_valid(validate_recommendation),
            "Registered principals post under their own identity"
        ),
        _grant(
            "recommendations.update", Collection.RECOMMENDATIONS, [Operation.UPDATE],
            owns_field("userId", source="existing"),
            "Authors edit their recommendations; the changed fields are not restricted"
        ),

        # chatMessages/{messageId}
        _grant(
            "chatMessages.read", Collection.CHAT_MESSAGES, [Operation.READ, Operation.LIST],
            is_registered,
            "Chat is visible to registered principals only"
        ),
        _grant(
            "chatMessages.create", Collection.CHAT_MESSAGES, [Operation.CREATE],
            is_registered & owns_field("userId"),
            "Registered principals post chat messages as themselves"
        ),

        # summarizedFeedbackLogs/{logId}
        _grant(
            "summarizedFeedbackLogs.read", Collection.FEEDBACK_LOGS, [Operation.READ, Operation.LIST],
            is_authenticated,
            "Feedback logs are visible to any signed-in principal, guests included"
        ),
        _grant(
            "summarizedFeedbackLogs.create", Collection.FEEDBACK_LOGS, [Operation.CREATE],
            is_authenticated & schema_valid(feedback_validator, name="schema_valid.validate_feedback_log"),
            "Any signed-in principal, guests included, logs feedback"
        ),
    ]


def create_policy_engine(strip_feedback_whitespace: bool = False) -> PolicyEngine:
    """Build an engine loaded with the FeedBacks policy."""
    engine = PolicyEngine()
    for rule in build_default_rules(strip_feedback_whitespace):
        engine.add_rule(rule)
    engine.logger.info("Policy loaded", **engine.get_engine_stats())
    return engine
