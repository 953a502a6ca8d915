"""
Branching Logic - Graph traversal rules and condition evaluation

- find_starting_operations: operations wired from the trigger node
- find_next_operations: outgoing edges of a completed operation, filtered by
  branch for condition operations
- ConditionEvaluator: rule trees used by the "condition" operation
"""

import logging
from typing import Dict, Any, Optional, List
from enum import Enum

from visual_flows.flow_engine.registry import OperationResult
from visual_flows.flow_engine.store import FlowConnection, FlowOperation
from visual_flows.flow_engine.variable_resolver import VariableResolver

logger = logging.getLogger(__name__)

CONDITION_TYPE = 'condition'
BRANCH_SUCCESS = 'success'
BRANCH_FAILURE = 'failure'


class ConditionOperator(str, Enum):
    """Condition operators for branching"""
    EQUALS = "EQUALS"
    NOT_EQUALS = "NOT_EQUALS"
    CONTAINS = "CONTAINS"
    NOT_CONTAINS = "NOT_CONTAINS"
    STARTS_WITH = "STARTS_WITH"
    ENDS_WITH = "ENDS_WITH"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    GREATER_OR_EQUAL = "GREATER_OR_EQUAL"
    LESS_OR_EQUAL = "LESS_OR_EQUAL"
    IS_EMPTY = "IS_EMPTY"
    IS_NOT_EMPTY = "IS_NOT_EMPTY"
    EXISTS = "EXISTS"
    NOT_EXISTS = "NOT_EXISTS"


class LogicalOperator(str, Enum):
    """Logical operators for combining conditions"""
    AND = "AND"
    OR = "OR"


def _operations_by_ids(operations: List[FlowOperation], ids: List[str]) -> List[FlowOperation]:
    # Unknown ids are dropped; flow declaration order is kept
    wanted = set(ids)
    return [op for op in operations if op.id in wanted]


def find_starting_operations(
    operations: List[FlowOperation],
    connections: List[FlowConnection],
) -> List[FlowOperation]:
    """Operations targeted by a connection whose source is the trigger node."""
    start_ids = [c.target_id for c in connections if c.from_trigger]
    return _operations_by_ids(operations, start_ids)


def branch_of(result: Optional[OperationResult]) -> Optional[str]:
    """Branch discriminator carried by a result, if any."""
    if result is None:
        return None
    if result.branch:
        return result.branch
    if isinstance(result.data, dict):
        return result.data.get('_branch')
    return None


def find_next_operations(
    current: FlowOperation,
    result: Optional[OperationResult],
    operations: List[FlowOperation],
    connections: List[FlowConnection],
) -> List[FlowOperation]:
    """
    Operations to visit after current completed.

    Condition operations that report a branch only follow connections tagged
    with that branch (connection_type or source_handle); every other
    operation follows all outgoing connections.
    """
    outgoing = [c for c in connections if c.source_id == current.id]
    if not outgoing:
        return []

    branch = branch_of(result) if current.operation_type == CONDITION_TYPE else None
    if branch:
        outgoing = [c for c in outgoing if c.matches_branch(branch)]
        logger.debug(f"Condition {current.operation_key} took branch '{branch}' ({len(outgoing)} connections)")

    return _operations_by_ids(operations, [c.target_id for c in outgoing])


def sort_wave(wave: List[FlowOperation]) -> List[FlowOperation]:
    """Order siblings by sort_order; sorted() is stable so ties keep declaration order."""
    return sorted(wave, key=lambda op: op.sort_order)


class ConditionEvaluator:
    """
    Evaluates condition rule trees.

    Rule example:
    {
        "operator": "AND",
        "conditions": [
            {"field": "{{ $trigger.payload.amount }}", "operator": "GREATER_THAN", "value": 10000},
            {"field": "{{ $trigger.payload.status }}", "operator": "EQUALS", "value": "open"}
        ]
    }
    """

    def __init__(self, resolver: Optional[VariableResolver] = None):
        """
        Args:
            resolver: Resolves template fields; None when rules arrive already interpolated
        """
        self.resolver = resolver

    def evaluate(self, condition: Optional[Dict[str, Any]]) -> bool:
        """
        Evaluate a condition.

        An empty condition is treated as true.
        """
        if not condition:
            return True

        operator = str(condition.get('operator', '')).upper()

        # Complex condition (AND/OR)
        if operator in [LogicalOperator.AND.value, LogicalOperator.OR.value]:
            sub_conditions = condition.get('conditions', [])
            results = [self.evaluate(c) for c in sub_conditions]

            if operator == LogicalOperator.AND.value:
                return all(results)
            else:  # OR
                return any(results)

        # Simple condition
        actual_value = condition.get('field')
        if self.resolver is not None:
            actual_value = self.resolver.resolve(actual_value)

        return self._check_condition(actual_value, operator, condition.get('value'))

    def _check_condition(
        self,
        actual: Any,
        operator: str,
        expected: Any
    ) -> bool:
        try:
            if operator == ConditionOperator.EQUALS.value:
                return actual == expected

            elif operator == ConditionOperator.NOT_EQUALS.value:
                return actual != expected

            elif operator == ConditionOperator.CONTAINS.value:
                if isinstance(actual, (list, tuple, dict)):
                    return expected in actual
                return str(expected) in str(actual)

            elif operator == ConditionOperator.NOT_CONTAINS.value:
                if isinstance(actual, (list, tuple, dict)):
                    return expected not in actual
                return str(expected) not in str(actual)

            elif operator == ConditionOperator.STARTS_WITH.value:
                return str(actual).startswith(str(expected))

            elif operator == ConditionOperator.ENDS_WITH.value:
                return str(actual).endswith(str(expected))

            elif operator == ConditionOperator.GREATER_THAN.value:
                return float(actual) > float(expected)

            elif operator == ConditionOperator.LESS_THAN.value:
                return float(actual) < float(expected)

            elif operator == ConditionOperator.GREATER_OR_EQUAL.value:
                return float(actual) >= float(expected)

            elif operator == ConditionOperator.LESS_OR_EQUAL.value:
                return float(actual) <= float(expected)

            elif operator == ConditionOperator.IS_EMPTY.value:
                return actual is None or actual == "" or actual == [] or actual == {}

            elif operator == ConditionOperator.IS_NOT_EMPTY.value:
                return not (actual is None or actual == "" or actual == [] or actual == {})

            elif operator == ConditionOperator.EXISTS.value:
                return actual is not None

            elif operator == ConditionOperator.NOT_EXISTS.value:
                return actual is None

            else:
                logger.warning(f"Unknown operator: {operator}")
                return False

        except (ValueError, TypeError) as e:
            logger.warning(f"Error evaluating condition: {e}")
            return False
