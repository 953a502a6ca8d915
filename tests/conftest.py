"""
Pytest fixtures shared by the visual flow tests
"""

import uuid
from typing import Any, Dict, List, Optional

import pytest

from visual_flows.flow_engine.registry import (
    OperationHandler,
    OperationRegistry,
    OperationResult,
    short_text_property,
)
from visual_flows.flow_engine.store import ExecutionRecord, FlowDefinition, FlowStore
from visual_flows.models.execution import TERMINAL_STATUSES
from visual_flows.operations import build_default_registry


class InMemoryFlowStore(FlowStore):
    """
    FlowStore kept in dicts. Records every call so tests can assert on
    status transitions and log ordering.
    """

    def __init__(self, flows: Optional[List[Dict[str, Any]]] = None):
        self.flows: Dict[str, FlowDefinition] = {}
        self.executions: Dict[str, Dict[str, Any]] = {}
        self.logs: Dict[str, List[Dict[str, Any]]] = {}
        self.transitions: Dict[str, List[str]] = {}
        self.fail_on: Optional[str] = None
        for flow in flows or []:
            self.add_flow(flow)

    def add_flow(self, flow: Dict[str, Any]) -> FlowDefinition:
        definition = FlowDefinition.from_dict(flow)
        self.flows[definition.id] = definition
        return definition

    def _maybe_fail(self, method: str):
        if self.fail_on == method:
            raise RuntimeError(f"{method} unavailable")

    async def get_flow_with_details(self, flow_id: str) -> Optional[FlowDefinition]:
        self._maybe_fail('get_flow_with_details')
        return self.flows.get(flow_id)

    async def create_execution(self, flow_id, trigger_data=None, triggered_by=None, metadata=None):
        self._maybe_fail('create_execution')
        execution_id = str(uuid.uuid4())
        self.executions[execution_id] = {
            'id': execution_id,
            'flow_id': flow_id,
            'status': 'pending',
            'trigger_data': trigger_data,
            'triggered_by': triggered_by,
            'metadata': metadata,
        }
        self.logs[execution_id] = []
        self.transitions[execution_id] = ['pending']
        return ExecutionRecord(id=execution_id, flow_id=flow_id, status='pending')

    async def update_execution_status(self, execution_id, status, **updates):
        self._maybe_fail('update_execution_status')
        execution = self.executions[execution_id]
        if execution['status'] in TERMINAL_STATUSES:
            raise ValueError(f"Execution {execution_id} already {execution['status']}")
        execution['status'] = status
        execution.update(updates)
        self.transitions[execution_id].append(status)

    async def add_execution_log(self, execution_id, operation_key, status, **fields):
        self._maybe_fail('add_execution_log')
        self.logs[execution_id].append({'operation_key': operation_key, 'status': status, **fields})

    def log_pairs(self, execution_id):
        """(operation_key, status) for every log entry, in order"""
        return [(entry['operation_key'], entry['status']) for entry in self.logs[execution_id]]


def _make_flow(operations, connections, flow_id='flow-1', status='active', trigger_config=None):
    """Build a flow dict; operations default their id to their key"""
    return {
        'id': flow_id,
        'name': 'Test Flow',
        'status': status,
        'trigger_config': trigger_config or {},
        'operations': [
            {'id': op.get('id', op['operation_key']), 'options': {}, **op}
            for op in operations
        ],
        'connections': [
            {'source_id': source, 'target_id': target, **extra}
            for source, target, *rest in connections
            for extra in [rest[0] if rest else {}]
        ],
    }


async def _record_handler(options: dict, ctx) -> OperationResult:
    return OperationResult(success=True, data={'key': ctx.operation_key, 'options': options})


async def _fail_handler(options: dict, ctx) -> OperationResult:
    return OperationResult(success=False, error=options.get('reason', 'boom'), error_detail={'code': 'E_FAIL'})


async def _raise_handler(options: dict, ctx) -> OperationResult:
    raise RuntimeError('handler exploded')


@pytest.fixture
def store():
    return InMemoryFlowStore()


@pytest.fixture
def registry():
    """Built-in catalog plus test handlers: record, fail, raise, needs_name"""
    registry = build_default_registry({'FLOW_SLEEP_MAX_SECONDS': 1})
    registry.register('record', OperationHandler(
        type='record', name='Record', description='Echo options', execute=_record_handler,
    ))
    registry.register('fail', OperationHandler(
        type='fail', name='Fail', description='Always fails', execute=_fail_handler,
    ))
    registry.register('raise', OperationHandler(
        type='raise', name='Raise', description='Always raises', execute=_raise_handler,
    ))
    registry.register('needs_name', OperationHandler(
        type='needs_name',
        name='Needs Name',
        description='Requires a name option',
        execute=_record_handler,
        options_schema=[short_text_property('name', 'Name', 'A name', required=True)],
    ))
    return registry


@pytest.fixture
def engine_factory(store, registry):
    from visual_flows.flow_engine.executor import FlowExecutionEngine

    def factory(container=None, env=None):
        return FlowExecutionEngine(
            store=store,
            registry=registry,
            container=container,
            env_provider=lambda: dict(env or {}),
        )

    return factory


@pytest.fixture
def app():
    from visual_flows import create_app
    from visual_flows.config import TestingConfig
    from visual_flows.database import db

    app = create_app(TestingConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_flow():
    """Flow dict builder: make_flow(operations, [(source, target[, extra])...])"""
    return _make_flow
