"""
Access policy package.

Defines the principal and request model, a small predicate-combinator
library, the default-deny evaluation engine and the FeedBacks rule table.

Modules of interest:
- models: Principal, Operation, PolicyRequest, Rule and results.
- predicates: Composable named checks (ownership, role, schema).
- engine: Default-deny evaluation over per-collection allow rules.
- policy: The rule table and engine factory.
"""

from .models import Operation, Principal, PolicyRequest, Rule, EvaluationResult
from .engine import PolicyEngine
from .policy import build_default_rules, create_policy_engine

__all__ = [
    "Operation", "Principal", "PolicyRequest", "Rule", "EvaluationResult",
    "PolicyEngine", "build_default_rules", "create_policy_engine",
]
