"""
VisualFlowService - SQLAlchemy-backed flow store and execution log sink.

Besides the FlowStore contract used by the engine it offers the flow-level
helpers the rest of the application needs (create, activate, duplicate,
list executions).

Usage:
    service = VisualFlowService()
    flow = service.create_complete_flow(
        flow={'name': 'Greet', 'status': 'active'},
        operations=[{'operation_key': 'greet', 'operation_type': 'log', ...}],
        connections=[{'source_id': 'trigger', 'target_id': 'greet'}],
    )
"""
import json
import logging
from visual_flows.utils.helpers import utcnow
from typing import Any, Dict, List, Optional

from visual_flows.database import db
from visual_flows.flow_engine.store import (
    ExecutionRecord,
    FlowDefinition,
    FlowStore,
    TRIGGER_SOURCE,
)
from visual_flows.models.execution import ExecutionStatus, VisualFlowExecution
from visual_flows.models.execution_log import VisualFlowExecutionLog
from visual_flows.models.flow import (
    ConnectionType,
    FlowStatus,
    VisualFlow,
    VisualFlowConnection,
    VisualFlowOperation,
)

logger = logging.getLogger(__name__)


def _json_safe(value: Any) -> Any:
    if value is None:
        return None
    return json.loads(json.dumps(value, default=str))


class VisualFlowService(FlowStore):
    """
    Persists flows and executions through the Flask-SQLAlchemy session.

    Must be used inside a Flask application context.
    """

    UPDATABLE_FIELDS = (
        'name',
        'description',
        'status',
        'trigger_type',
        'trigger_config',
        'canvas_state',
    )

    # === FlowStore contract ===

    async def get_flow_with_details(self, flow_id: str) -> Optional[FlowDefinition]:
        flow = db.session.get(VisualFlow, flow_id)
        if not flow:
            return None
        return FlowDefinition.from_dict(flow.to_dict(include_graph=True))

    async def create_execution(
        self,
        flow_id: str,
        trigger_data: Any = None,
        triggered_by: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ExecutionRecord:
        execution = VisualFlowExecution(
            flow_id=flow_id,
            status=ExecutionStatus.PENDING.value,
            trigger_data=_json_safe(trigger_data) or {},
            data_chain={},
            triggered_by=triggered_by,
            execution_metadata=_json_safe(metadata) or {},
        )
        self._commit(execution)
        logger.info(f"Created VisualFlowExecution: {execution.id} for flow: {flow_id}")
        return ExecutionRecord(id=execution.id, flow_id=flow_id, status=execution.status)

    async def update_execution_status(self, execution_id: str, status: str, **updates) -> None:
        execution = db.session.get(VisualFlowExecution, execution_id)
        if not execution:
            raise LookupError(f"Execution not found: {execution_id}")

        if execution.is_terminal:
            raise ValueError(
                f"Execution {execution_id} is already {execution.status}, cannot move to {status}"
            )

        execution.status = status
        if 'data_chain' in updates:
            execution.data_chain = _json_safe(updates['data_chain'])
        if 'error' in updates:
            execution.error = updates['error']
        if 'error_details' in updates:
            execution.error_details = _json_safe(updates['error_details'])
        if 'started_at' in updates:
            execution.started_at = updates['started_at']
        if 'completed_at' in updates:
            execution.completed_at = updates['completed_at']

        self._commit(execution)
        logger.debug(f"Execution {execution_id} -> {status}")

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
        sequence = VisualFlowExecutionLog.query.filter_by(execution_id=execution_id).count()
        log = VisualFlowExecutionLog(
            execution_id=execution_id,
            operation_id=operation_id,
            operation_key=operation_key,
            sequence=sequence,
            status=status,
            input_data=_json_safe(input_data),
            output_data=_json_safe(output_data),
            error=error,
            error_stack=error_stack,
            duration_ms=duration_ms,
            executed_at=utcnow(),
        )
        self._commit(log)

    # === Flow helpers ===

    def create_complete_flow(
        self,
        flow: Dict[str, Any],
        operations: Optional[List[Dict[str, Any]]] = None,
        connections: Optional[List[Dict[str, Any]]] = None,
    ) -> VisualFlow:
        """
        Create a flow with its operations and connections.

        Connections may reference operations by id or by operation_key; keys
        are mapped to the ids of the operations created here.
        """
        record = VisualFlow(
            name=flow['name'],
            description=flow.get('description'),
            status=flow.get('status', FlowStatus.DRAFT.value),
            trigger_type=flow.get('trigger_type', 'manual'),
            trigger_config=flow.get('trigger_config') or {},
            canvas_state=flow.get('canvas_state') or {},
            flow_metadata=flow.get('metadata') or {},
        )
        db.session.add(record)
        db.session.flush()

        id_map = self._add_operations(record, operations or [])
        self._add_connections(record, connections or [], id_map)

        db.session.commit()
        logger.info(f"Created VisualFlow: {record.id} ({record.name})")
        return record

    def update_complete_flow(
        self,
        flow_id: str,
        flow: Optional[Dict[str, Any]] = None,
        operations: Optional[List[Dict[str, Any]]] = None,
        connections: Optional[List[Dict[str, Any]]] = None,
    ) -> VisualFlow:
        """
        Update flow fields and replace its graph.

        operations / connections left as None are kept. When only the
        operations are replaced, existing connections are re-pointed at the
        new operations that carry the same operation_key.
        """
        unknown = set(flow or {}) - set(self.UPDATABLE_FIELDS) - {'metadata'}
        if unknown:
            raise ValueError(f"Unknown flow fields: {', '.join(sorted(unknown))}")

        record = self._get_flow(flow_id)
        for name, value in (flow or {}).items():
            if name == 'metadata':
                record.flow_metadata = value or {}
            else:
                setattr(record, name, value)

        id_map: Dict[str, str] = {}
        if operations is not None:
            old_keys = {op.id: op.operation_key for op in record.operations}
            record.operations.clear()
            db.session.flush()
            id_map = self._add_operations(record, operations)

            if connections is None:
                for conn in record.connections:
                    conn.source_id = self._map_endpoint(old_keys.get(conn.source_id, conn.source_id), id_map)
                    conn.target_id = self._map_endpoint(old_keys.get(conn.target_id, conn.target_id), id_map)
        else:
            for op in record.operations:
                id_map[op.operation_key] = op.id
                id_map[op.id] = op.id

        if connections is not None:
            record.connections.clear()
            db.session.flush()
            self._add_connections(record, connections, id_map)

        self._commit(record)
        logger.info(f"Updated VisualFlow: {record.id} ({record.name})")
        return record

    def update_canvas_state(self, flow_id: str, canvas_state: Dict[str, Any]) -> VisualFlow:
        """Store editor positions/nodes/edges without touching the graph rows."""
        record = self._get_flow(flow_id)
        record.canvas_state = canvas_state or {}
        self._commit(record)
        return record

    def activate_flow(self, flow_id: str) -> VisualFlow:
        return self._set_status(flow_id, FlowStatus.ACTIVE)

    def deactivate_flow(self, flow_id: str) -> VisualFlow:
        return self._set_status(flow_id, FlowStatus.INACTIVE)

    def duplicate_flow(self, flow_id: str, new_name: Optional[str] = None) -> VisualFlow:
        """Copy a flow as a draft, remapping connection endpoints to the new operation ids."""
        original = self._get_flow(flow_id)

        copy = VisualFlow(
            name=new_name or f"{original.name} (Copy)",
            description=original.description,
            status=FlowStatus.DRAFT.value,
            trigger_type=original.trigger_type,
            trigger_config=dict(original.trigger_config or {}),
            canvas_state=dict(original.canvas_state or {}),
            flow_metadata=dict(original.flow_metadata or {}),
        )
        db.session.add(copy)
        db.session.flush()

        id_map: Dict[str, str] = {}
        for op in original.operations:
            new_op = VisualFlowOperation(
                flow_id=copy.id,
                operation_key=op.operation_key,
                operation_type=op.operation_type,
                name=op.name,
                options=dict(op.options or {}),
                position_x=op.position_x,
                position_y=op.position_y,
                sort_order=op.sort_order,
            )
            db.session.add(new_op)
            db.session.flush()
            id_map[op.id] = new_op.id

        for conn in original.connections:
            db.session.add(VisualFlowConnection(
                flow_id=copy.id,
                source_id=self._map_endpoint(conn.source_id, id_map),
                source_handle=conn.source_handle,
                target_id=self._map_endpoint(conn.target_id, id_map),
                target_handle=conn.target_handle,
                connection_type=conn.connection_type,
                condition=conn.condition,
                label=conn.label,
            ))

        db.session.commit()
        logger.info(f"Duplicated flow {flow_id} as {copy.id}")
        return copy

    def get_flow_operations(self, flow_id: str) -> List[VisualFlowOperation]:
        return (
            VisualFlowOperation.query
            .filter_by(flow_id=flow_id)
            .order_by(VisualFlowOperation.sort_order.asc())
            .all()
        )

    def get_flow_connections(self, flow_id: str) -> List[VisualFlowConnection]:
        return VisualFlowConnection.query.filter_by(flow_id=flow_id).all()

    # === Execution queries ===

    def get_execution_with_logs(self, execution_id: str) -> Optional[VisualFlowExecution]:
        return db.session.get(VisualFlowExecution, execution_id)

    def list_flow_executions(self, flow_id: str, limit: int = 50) -> List[VisualFlowExecution]:
        return (
            VisualFlowExecution.query
            .filter_by(flow_id=flow_id)
            .order_by(VisualFlowExecution.created_at.desc())
            .limit(limit)
            .all()
        )

    # === Internals ===

    def _add_operations(self, record: VisualFlow, operations: List[Dict[str, Any]]) -> Dict[str, str]:
        """Create operation rows; returns key/explicit id -> new id."""
        id_map: Dict[str, str] = {}
        for index, op in enumerate(operations):
            operation = VisualFlowOperation(
                flow_id=record.id,
                operation_key=op['operation_key'],
                operation_type=op['operation_type'],
                name=op.get('name'),
                options=op.get('options') if op.get('options') is not None else {},
                position_x=op.get('position_x', 0),
                position_y=op.get('position_y', 0),
                sort_order=op.get('sort_order', index),
            )
            if op.get('id'):
                operation.id = op['id']
            db.session.add(operation)
            db.session.flush()
            id_map[op['operation_key']] = operation.id
            if op.get('id'):
                id_map[op['id']] = operation.id
        return id_map

    def _add_connections(
        self,
        record: VisualFlow,
        connections: List[Dict[str, Any]],
        id_map: Dict[str, str],
    ) -> None:
        for conn in connections:
            db.session.add(VisualFlowConnection(
                flow_id=record.id,
                source_id=self._map_endpoint(conn['source_id'], id_map),
                source_handle=conn.get('source_handle') or 'default',
                target_id=self._map_endpoint(conn['target_id'], id_map),
                target_handle=conn.get('target_handle') or 'default',
                connection_type=conn.get('connection_type') or ConnectionType.DEFAULT.value,
                condition=conn.get('condition'),
                label=conn.get('label'),
            ))

    @staticmethod
    def _map_endpoint(endpoint: str, id_map: Dict[str, str]) -> str:
        if endpoint == TRIGGER_SOURCE:
            return TRIGGER_SOURCE
        return id_map.get(endpoint, endpoint)

    def _get_flow(self, flow_id: str) -> VisualFlow:
        flow = db.session.get(VisualFlow, flow_id)
        if not flow:
            raise LookupError(f"Flow not found: {flow_id}")
        return flow

    def _set_status(self, flow_id: str, status: FlowStatus) -> VisualFlow:
        flow = self._get_flow(flow_id)
        flow.status = status.value
        db.session.commit()
        logger.info(f"Flow {flow_id} -> {status.value}")
        return flow

    @staticmethod
    def _commit(instance):
        db.session.add(instance)
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
