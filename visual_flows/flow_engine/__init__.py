"""
Flow Engine - visual flow execution

Walks a flow's operation graph from the trigger, runs each operation through
its registered handler and records every step against the execution.
"""

from visual_flows.flow_engine.data_chain import DataChain
from visual_flows.flow_engine.errors import (
    ConfigurationError,
    FlowExecutionError,
    OperationError,
    PersistenceError,
)
from visual_flows.flow_engine.executor import (
    ExecutionOptions,
    ExecutionResult,
    FlowExecutionEngine,
)
from visual_flows.flow_engine.registry import (
    OperationContext,
    OperationHandler,
    OperationRegistry,
    OperationResult,
)
from visual_flows.flow_engine.step_processor import StepProcessor
from visual_flows.flow_engine.variable_resolver import VariableResolver, interpolate

__all__ = [
    'ConfigurationError',
    'DataChain',
    'ExecutionOptions',
    'ExecutionResult',
    'FlowExecutionEngine',
    'FlowExecutionError',
    'OperationContext',
    'OperationError',
    'OperationHandler',
    'OperationRegistry',
    'OperationResult',
    'PersistenceError',
    'StepProcessor',
    'VariableResolver',
    'interpolate',
]
