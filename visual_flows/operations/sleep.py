"""
Sleep operation - pauses the run without blocking other runs
"""
import asyncio
import logging

from visual_flows.flow_engine.registry import (
    OperationContext,
    OperationHandler,
    OperationResult,
    number_property,
)

logger = logging.getLogger(__name__)


def make_sleep_operation(max_seconds: float) -> OperationHandler:

    async def sleep_handler(options: dict, ctx: OperationContext) -> OperationResult:
        try:
            seconds = float(options.get('seconds', 0))
        except (TypeError, ValueError):
            return OperationResult(success=False, error=f"Invalid seconds: {options.get('seconds')!r}")

        if seconds < 0:
            return OperationResult(success=False, error="seconds must be >= 0")
        if seconds > max_seconds:
            logger.warning(f"Sleep of {seconds}s in {ctx.operation_key} capped at {max_seconds}s")
            seconds = max_seconds

        await asyncio.sleep(seconds)
        return OperationResult(success=True, data={'slept': seconds})

    return OperationHandler(
        type='sleep',
        name='Sleep',
        description='Wait before continuing',
        category='utility',
        execute=sleep_handler,
        options_schema=[
            number_property('seconds', 'Seconds', 'How long to wait', required=True),
        ],
    )
