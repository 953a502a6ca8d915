"""
Transform operation - emits its (interpolated) data option as output
"""
from visual_flows.flow_engine.registry import (
    OperationContext,
    OperationHandler,
    OperationResult,
    json_property,
)


async def transform_handler(options: dict, ctx: OperationContext) -> OperationResult:
    return OperationResult(success=True, data=options.get('data'))


transform_operation = OperationHandler(
    type='transform',
    name='Transform',
    description='Build a new value from the data chain',
    category='data',
    execute=transform_handler,
    options_schema=[
        json_property('data', 'Data', 'Output structure; may reference {{ variables }}', required=True),
    ],
)
