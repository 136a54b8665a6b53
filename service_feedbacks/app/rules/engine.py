"""
Rule evaluation engine for the access policy.
"""

import time
from typing import Dict, Any, Optional, List

from shared.logging import get_logger
from shared.errors import PermissionDeniedError
from .models import Rule, PolicyRequest, EvaluationResult


class PolicyEngine:
    """Default-deny evaluator over per-collection allow rules.

    Rules only ever grant. A request is allowed when some enabled rule for
    its collection covers the operation and its condition holds; anything
    else, including an unknown collection or a failing predicate, is denied.
    Evaluation has no side effects beyond debug logging.
    """

    def __init__(self):
        self.logger = get_logger("feedbacks.rules.engine")
        self.rules: Dict[str, Rule] = {}
        self.rule_cache: Dict[str, List[Rule]] = {}  # collection -> rules

    def add_rule(self, rule: Rule) -> None:
        self.rules[rule.rule_id] = rule
        self._invalidate_cache()
        self.logger.debug("Rule added", rule_id=rule.rule_id, collection=rule.collection)

    def remove_rule(self, rule_id: str) -> bool:
        if rule_id not in self.rules:
            return False
        del self.rules[rule_id]
        self._invalidate_cache()
        self.logger.debug("Rule removed", rule_id=rule_id)
        return True

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        return self.rules.get(rule_id)

    def get_rules_for_collection(self, collection: str) -> List[Rule]:
        """Enabled rules for a collection, in registration order."""
        if collection in self.rule_cache:
            return self.rule_cache[collection]

        rules = [
            rule for rule in self.rules.values()
            if rule.collection == collection and rule.enabled
        ]
        self.rule_cache[collection] = rules
        return rules

    def evaluate(self, request: PolicyRequest) -> EvaluationResult:
        """Decide allow/deny for one request."""
        start_time = time.perf_counter()

        def elapsed() -> float:
            return (time.perf_counter() - start_time) * 1000

        rules = self.get_rules_for_collection(request.collection)
        if not rules:
            return EvaluationResult(
                allowed=False,
                reason=f"No rules for collection '{request.collection}'",
                evaluation_time_ms=elapsed()
            )

        applicable = [rule for rule in rules if rule.covers(request.operation)]
        if not applicable:
            return EvaluationResult(
                allowed=False,
                reason=f"No rule grants '{request.operation.value}' on '{request.collection}'",
                evaluation_time_ms=elapsed()
            )

        failed = []
        for rule in applicable:
            try:
                holds = rule.condition(request)
            except Exception as e:
                self.logger.error(
                    "Rule condition raised",
                    rule_id=rule.rule_id,
                    error=str(e)
                )
                holds = False

            if holds:
                return EvaluationResult(
                    allowed=True,
                    reason=f"Rule '{rule.rule_id}' matched",
                    matched_rules=[rule.rule_id],
                    evaluation_time_ms=elapsed()
                )
            failed.append(rule.condition.name)

        return EvaluationResult(
            allowed=False,
            reason=f"Condition not met: {'; '.join(failed)}",
            evaluation_time_ms=elapsed()
        )

    def authorize(self, request: PolicyRequest) -> EvaluationResult:
        """Evaluate and raise PermissionDeniedError on deny."""
        result = self.evaluate(request)

        self.logger.debug(
            "Policy decision",
            collection=request.collection,
            operation=request.operation.value,
            principal_role=request.principal.role,
            allowed=result.allowed,
            reason=result.reason
        )

        if not result.allowed:
            self.logger.info(
                "Permission denied",
                collection=request.collection,
                operation=request.operation.value,
                document_id=request.document_id,
                reason=result.reason
            )
            # The reason stays in the logs; callers only learn it was denied.
            raise PermissionDeniedError(details={
                "collection": request.collection,
                "operation": request.operation.value
            })
        return result

    def _invalidate_cache(self):
        self.rule_cache.clear()

    def get_engine_stats(self) -> Dict[str, Any]:
        return {
            "total_rules": len(self.rules),
            "enabled_rules": len([r for r in self.rules.values() if r.enabled]),
            "collections": sorted(set(r.collection for r in self.rules.values()))
        }

    def clear_all_rules(self):
        self.rules.clear()
        self._invalidate_cache()
        self.logger.info("All rules cleared")
