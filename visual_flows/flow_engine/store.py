"""
Flow store interface consumed by the engine

The engine only sees plain dataclasses (FlowDefinition, FlowOperation,
FlowConnection, ExecutionRecord) and the abstract FlowStore below. Concrete
stores live in visual_flows.services.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Tuple

TRIGGER_SOURCE = 'trigger'


@dataclass(frozen=True)
class FlowOperation:
    id: str
    operation_key: str
    operation_type: str
    options: Dict[str, Any] = field(default_factory=dict)
    sort_order: int = 0
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FlowOperation':
        return cls(
            id=str(data['id']),
            operation_key=data['operation_key'],
            operation_type=data['operation_type'],
            options=data.get('options') or {},
            sort_order=data.get('sort_order') or 0,
            name=data.get('name'),
        )


@dataclass(frozen=True)
class FlowConnection:
    source_id: str
    target_id: str
    id: Optional[str] = None
    connection_type: Optional[str] = None
    source_handle: Optional[str] = None

    @property
    def from_trigger(self) -> bool:
        return self.source_id == TRIGGER_SOURCE

    def matches_branch(self, branch: str) -> bool:
        return self.connection_type == branch or self.source_handle == branch

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FlowConnection':
        return cls(
            id=str(data['id']) if data.get('id') else None,
            source_id=str(data['source_id']),
            target_id=str(data['target_id']),
            connection_type=data.get('connection_type'),
            source_handle=data.get('source_handle'),
        )


def graph_from_canvas(canvas_state: Dict[str, Any]) -> Tuple[List[FlowOperation], List[FlowConnection]]:
    """
    Build operations and connections from editor canvas state.

    Nodes carry their operation in node['data'] (operationKey, operationType,
    options, label); edges map to connections keyed by sourceHandle. The
    trigger node itself is not an operation.
    """
    operations: List[FlowOperation] = []
    for node in canvas_state.get('nodes') or []:
        node_id = str(node['id'])
        if node_id == TRIGGER_SOURCE:
            continue
        node_data = node.get('data') or {}
        operations.append(FlowOperation(
            id=node_id,
            operation_key=node_data.get('operationKey') or node_id,
            operation_type=node_data.get('operationType') or 'unknown',
            options=node_data.get('options') or {},
            name=node_data.get('label') or node_data.get('operationKey'),
        ))

    connections = [
        FlowConnection(
            id=str(edge['id']) if edge.get('id') else None,
            source_id=str(edge['source']),
            target_id=str(edge['target']),
            source_handle=edge.get('sourceHandle') or 'default',
            connection_type='default',
        )
        for edge in canvas_state.get('edges') or []
    ]
    return operations, connections


@dataclass(frozen=True)
class FlowDefinition:
    """
    Read-only view of a flow with its operations and connections attached.
    """
    id: str
    status: str
    trigger_config: Dict[str, Any] = field(default_factory=dict)
    operations: List[FlowOperation] = field(default_factory=list)
    connections: List[FlowConnection] = field(default_factory=list)
    name: Optional[str] = None

    @property
    def trigger_event(self) -> Optional[str]:
        return (self.trigger_config or {}).get('event')

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FlowDefinition':
        """
        Operations and connections come from the stored rows; a flow that has
        none yet but carries canvas nodes is built from its canvas state.
        """
        operations = [FlowOperation.from_dict(op) for op in data.get('operations', [])]
        connections = [FlowConnection.from_dict(c) for c in data.get('connections', [])]

        canvas_state = data.get('canvas_state') or {}
        if not operations and canvas_state.get('nodes'):
            operations, connections = graph_from_canvas(canvas_state)

        return cls(
            id=str(data['id']),
            status=data.get('status', 'draft'),
            trigger_config=data.get('trigger_config') or {},
            operations=operations,
            connections=connections,
            name=data.get('name'),
        )


@dataclass
class ExecutionRecord:
    id: str
    flow_id: str
    status: str


class FlowStore(ABC):
    """
    Flow definitions plus the execution log sink.

    Every method is awaited to completion before the engine moves on, so the
    order of log entries always matches the order of execution.
    """

    @abstractmethod
    async def get_flow_with_details(self, flow_id: str) -> Optional[FlowDefinition]:
        """Load a flow with its operations and connections, or None"""

    @abstractmethod
    async def create_execution(
        self,
        flow_id: str,
        trigger_data: Any = None,
        triggered_by: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ExecutionRecord:
        """Create an execution record in 'pending' status"""

    @abstractmethod
    async def update_execution_status(self, execution_id: str, status: str, **updates) -> None:
        """
        Move an execution to status.

        updates may carry data_chain, error, error_details, completed_at.
        """

    @abstractmethod
    async def add_execution_log(
        self,
        execution_id: str,
        operation_key: str,
        status: str,
        operation_id: Optional[str] = None,
        input_data: Any = None,
        output_data: Any = None,
        error: Optional[str] = None,
        error_stack: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> None:
        """Append one step-level log entry"""
