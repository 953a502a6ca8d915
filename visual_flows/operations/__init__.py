"""
Built-in operation catalog

build_default_registry() returns a fresh OperationRegistry with every
built-in handler registered. Applications may register more handlers on the
returned registry before the first run.
"""
from typing import Any, Mapping, Optional

from visual_flows.config import Config
from visual_flows.flow_engine.registry import OperationRegistry
from visual_flows.operations.condition import condition_operation
from visual_flows.operations.http_request import make_http_request_operation
from visual_flows.operations.log import log_operation
from visual_flows.operations.sleep import make_sleep_operation
from visual_flows.operations.transform import transform_operation

__all__ = [
    'build_default_registry',
    'condition_operation',
    'log_operation',
    'transform_operation',
]


def build_default_registry(config: Optional[Mapping[str, Any]] = None) -> OperationRegistry:
    """
    Args:
        config: Flask config (or any mapping) with FLOW_SLEEP_MAX_SECONDS / FLOW_HTTP_TIMEOUT
    """
    config = config or {}
    max_sleep = float(config.get('FLOW_SLEEP_MAX_SECONDS', Config.FLOW_SLEEP_MAX_SECONDS))
    http_timeout = float(config.get('FLOW_HTTP_TIMEOUT', Config.FLOW_HTTP_TIMEOUT))

    return OperationRegistry([
        log_operation,
        condition_operation,
        transform_operation,
        make_sleep_operation(max_sleep),
        make_http_request_operation(http_timeout),
    ])
