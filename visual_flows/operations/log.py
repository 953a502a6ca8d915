"""
Log operation - writes a message to the application log
"""
import logging
from datetime import datetime, timezone

from visual_flows.flow_engine.registry import (
    OperationContext,
    OperationHandler,
    OperationResult,
    dropdown_property,
    short_text_property,
)

logger = logging.getLogger(__name__)

LEVELS = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warning': logging.WARNING,
    'error': logging.ERROR,
}


async def log_handler(options: dict, ctx: OperationContext) -> OperationResult:
    """
    Log the (already interpolated) message and echo it back
    """
    message = options.get('message')
    if not isinstance(message, str):
        message = str(message)

    level = str(options.get('level', 'info')).lower()
    if level not in LEVELS:
        return OperationResult(success=False, error=f"Unknown log level: {level}")

    logger.log(LEVELS[level], f"[flow {ctx.flow_id} / {ctx.operation_key}] {message}")

    return OperationResult(
        success=True,
        data={
            'logged': message,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }
    )


log_operation = OperationHandler(
    type='log',
    name='Log',
    description='Write a message to the application log',
    category='utility',
    execute=log_handler,
    options_schema=[
        short_text_property('message', 'Message', 'Text to log; may contain {{ variables }}', required=True),
        dropdown_property(
            'level',
            'Level',
            'Log level',
            options=[{'label': name.title(), 'value': name} for name in LEVELS],
            default_value='info',
        ),
    ],
)
