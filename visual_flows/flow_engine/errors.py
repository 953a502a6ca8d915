"""
Flow engine error taxonomy.

ConfigurationError  - the flow cannot run as defined (missing, inactive,
                      unknown operation type, reserved/duplicate keys)
OperationError      - a handler reported failure or raised
PersistenceError    - the execution log sink could not record state
"""
from typing import Any, Optional


class FlowExecutionError(Exception):
    """Base class for errors raised while executing a flow"""

    error_type = 'execution'

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail


class ConfigurationError(FlowExecutionError):
    error_type = 'configuration'


class OperationError(FlowExecutionError):
    error_type = 'operation'

    def __init__(
        self,
        message: str,
        operation_key: Optional[str] = None,
        detail: Optional[Any] = None,
    ):
        super().__init__(message, detail)
        self.operation_key = operation_key


class PersistenceError(FlowExecutionError):
    error_type = 'persistence'
