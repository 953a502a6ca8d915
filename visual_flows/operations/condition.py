"""
Condition operation - evaluates rules and picks the success or failure branch
"""
from visual_flows.flow_engine.branching import (
    BRANCH_FAILURE,
    BRANCH_SUCCESS,
    ConditionEvaluator,
)
from visual_flows.flow_engine.registry import (
    OperationContext,
    OperationHandler,
    OperationResult,
    json_property,
)


async def condition_handler(options: dict, ctx: OperationContext) -> OperationResult:
    """
    Options arrive interpolated, so rule fields already hold their values:

    {"rules": {"field": 1200, "operator": "GREATER_THAN", "value": 1000}}
    """
    rules = options.get('rules')
    if rules is not None and not isinstance(rules, dict):
        return OperationResult(success=False, error="'rules' must be an object")

    matched = ConditionEvaluator().evaluate(rules)
    branch = BRANCH_SUCCESS if matched else BRANCH_FAILURE

    return OperationResult(
        success=True,
        data={'_branch': branch, 'result': matched},
        branch=branch,
    )


condition_operation = OperationHandler(
    type='condition',
    name='Condition',
    description='Continue on the success or failure branch depending on rules',
    category='logic',
    execute=condition_handler,
    options_schema=[
        json_property('rules', 'Rules', 'Condition tree ({field, operator, value} or {operator: AND|OR, conditions})'),
    ],
)
