from visual_flows.models.flow import (
    VisualFlow,
    VisualFlowOperation,
    VisualFlowConnection,
    FlowStatus,
    TriggerType,
    ConnectionType,
)
from visual_flows.models.execution import VisualFlowExecution, ExecutionStatus
from visual_flows.models.execution_log import VisualFlowExecutionLog, LogStatus

__all__ = [
    'VisualFlow',
    'VisualFlowOperation',
    'VisualFlowConnection',
    'FlowStatus',
    'TriggerType',
    'ConnectionType',
    'VisualFlowExecution',
    'ExecutionStatus',
    'VisualFlowExecutionLog',
    'LogStatus',
]
