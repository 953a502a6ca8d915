"""
Flow Executor - Main orchestrator for visual flow execution

Responsibilities:
- Load and validate the flow definition
- Initialize the data chain
- Create and drive the execution record
- Walk the operation graph depth-first, one operation at a time
- Apply branching rules
- Finalize the execution as completed or failed
"""

import json
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

from visual_flows.flow_engine.branching import (
    find_next_operations,
    find_starting_operations,
    sort_wave,
)
from visual_flows.flow_engine.data_chain import DataChain, TRIGGER_KEY, is_reserved_key
from visual_flows.flow_engine.errors import (
    ConfigurationError,
    FlowExecutionError,
    OperationError,
    PersistenceError,
)
from visual_flows.flow_engine.registry import OperationRegistry
from visual_flows.flow_engine.step_processor import StepFailure, StepProcessor
from visual_flows.flow_engine.store import FlowDefinition, FlowOperation, FlowStore
from visual_flows.models.execution import ExecutionStatus
from visual_flows.models.execution_log import LogStatus
from visual_flows.models.flow import FlowStatus
from visual_flows.services.env_allowlist import get_allowed_env_vars
from visual_flows.utils.helpers import utcnow

logger = logging.getLogger(__name__)


@dataclass
class ExecutionOptions:
    """Caller-supplied details about who or what started the run"""
    triggered_by: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ExecutionResult:
    """
    Outcome of FlowExecutionEngine.execute(). Always returned, never raised.

    error_type is one of 'configuration', 'operation', 'persistence' when
    status is 'failed'.
    """
    execution_id: Optional[str]
    status: str
    data_chain: DataChain
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[Dict[str, Any]] = None

    @property
    def succeeded(self) -> bool:
        return self.status == ExecutionStatus.COMPLETED.value


def validate_flow(flow: FlowDefinition) -> None:
    """
    Check that a flow can run.

    Raises:
        ConfigurationError: If the flow is not active or its operation keys
            are reserved or duplicated
    """
    if flow.status != FlowStatus.ACTIVE.value:
        raise ConfigurationError(f"Flow '{flow.id}' is not active (status: {flow.status})")

    seen = set()
    for operation in flow.operations:
        key = operation.operation_key
        if is_reserved_key(key):
            raise ConfigurationError(f"Operation key '{key}' uses the reserved '$' prefix")
        if key in seen:
            raise ConfigurationError(f"Duplicate operation key: {key}")
        seen.add(key)


class FlowExecutionEngine:
    """
    Executes visual flows.

    Usage:
        engine = FlowExecutionEngine(store=VisualFlowService(), registry=build_default_registry())
        result = await engine.execute(
            flow_id='uuid',
            trigger_data={'name': 'Ada'},
            options=ExecutionOptions(triggered_by='user:42'),
        )
        result.status  # 'completed' or 'failed'

    Runs are independent: several execute() calls may be awaited concurrently,
    each with its own data chain and execution record. Inside one run,
    operations never overlap.
    """

    def __init__(
        self,
        store: FlowStore,
        registry: OperationRegistry,
        container: Optional[Mapping[str, Any]] = None,
        env_provider: Optional[Callable[[], Dict[str, str]]] = None,
    ):
        """
        Args:
            store: Flow store and execution log sink
            registry: Operation handlers by type
            container: Dependency scope handed read-only to every handler
            env_provider: Returns the allow-listed environment snapshot for $env
        """
        self.store = store
        self.registry = registry
        self.container = MappingProxyType(dict(container or {}))
        self.env_provider = env_provider or get_allowed_env_vars

    async def execute(
        self,
        flow_id: str,
        trigger_data: Any = None,
        options: Optional[ExecutionOptions] = None,
    ) -> ExecutionResult:
        """
        Execute a flow.

        Args:
            flow_id: Flow id
            trigger_data: Trigger payload (webhook body, event data, ...)
            options: Who triggered the run and free-form metadata

        Returns:
            ExecutionResult with status 'completed' or 'failed'
        """
        options = options or ExecutionOptions()
        trigger_data = trigger_data if trigger_data is not None else {}

        # 1. Load and validate flow
        flow: Optional[FlowDefinition] = None
        setup_error: Optional[FlowExecutionError] = None
        try:
            flow = await self.store.get_flow_with_details(flow_id)
        except Exception as e:
            logger.error(f"Failed to load flow {flow_id}: {e}")
            setup_error = PersistenceError(f"Could not load flow '{flow_id}': {e}")

        if setup_error is None:
            if flow is None:
                setup_error = ConfigurationError(f"Flow '{flow_id}' not found")
            else:
                try:
                    validate_flow(flow)
                except ConfigurationError as e:
                    setup_error = e

        # 2. Initialize data chain
        env: Dict[str, str] = {}
        try:
            env = dict(self.env_provider() or {})
        except Exception as e:
            logger.error(f"Failed to read environment allowlist for flow {flow_id}: {e}")
            if setup_error is None:
                setup_error = ConfigurationError(f"Could not read environment allowlist: {e}")

        data_chain = DataChain(
            payload=trigger_data,
            event=flow.trigger_event if flow else None,
            triggered_by=options.triggered_by,
            env=env,
        )

        # 3. Create execution record
        try:
            record = await self.store.create_execution(
                flow_id=flow_id,
                trigger_data=trigger_data,
                triggered_by=options.triggered_by,
                metadata=options.metadata,
            )
        except Exception as e:
            logger.error(f"Failed to create execution record for flow {flow_id}: {e}")
            error = PersistenceError(f"Could not create execution record: {e}")
            return self._result(None, data_chain, error)

        execution_id = record.id
        logger.info(f"Created execution {execution_id} for flow {flow_id}")

        if setup_error is not None:
            logger.error(f"Execution {execution_id} cannot start: {setup_error.message}")
            return await self._finalize(execution_id, data_chain, setup_error)

        try:
            await self.store.update_execution_status(
                execution_id,
                ExecutionStatus.RUNNING.value,
                data_chain=data_chain.snapshot(),
                started_at=utcnow(),
            )
            await self.store.add_execution_log(
                execution_id=execution_id,
                operation_key=TRIGGER_KEY,
                status=LogStatus.SUCCESS.value,
                input_data=trigger_data,
                output_data=data_chain.snapshot()[TRIGGER_KEY],
                duration_ms=0,
            )
        except Exception as e:
            logger.error(f"Failed to start execution {execution_id}: {e}")
            return await self._finalize(
                execution_id, data_chain, PersistenceError(f"Could not start execution: {e}")
            )

        # 4-5. Walk the graph
        processor = StepProcessor(
            registry=self.registry,
            store=self.store,
            data_chain=data_chain,
            flow_id=flow_id,
            execution_id=execution_id,
            container=self.container,
        )
        failure = await self._walk(flow, processor)

        # 6-7. Finalize
        return await self._finalize(execution_id, data_chain, failure.error if failure else None)

    async def _walk(self, flow: FlowDefinition, processor: StepProcessor) -> Optional[StepFailure]:
        """
        Depth-first walk from the start set.

        A LIFO queue holds the operations still to visit. Each completed
        operation pushes its next wave on top, so that whole branch finishes
        before the next sibling starts. Every operation runs at most once per
        execution: a node reached again through a diamond or a cycle is
        skipped.

        Returns:
            The first StepFailure, or None if every visited operation succeeded
        """
        start_wave = sort_wave(find_starting_operations(flow.operations, flow.connections))
        if not start_wave:
            logger.info(f"Flow {flow.id} has no operations connected to the trigger")
            return None

        pending: List[FlowOperation] = list(reversed(start_wave))
        visited = set()

        while pending:
            operation = pending.pop()

            if operation.id in visited:
                logger.warning(
                    f"Operation {operation.operation_key} already executed in this run, skipping"
                )
                continue
            visited.add(operation.id)

            outcome = await processor.process(operation)
            if isinstance(outcome, StepFailure):
                return outcome

            next_wave = sort_wave(
                find_next_operations(operation, outcome.result, flow.operations, flow.connections)
            )
            pending.extend(reversed(next_wave))

        return None

    async def _finalize(
        self,
        execution_id: str,
        data_chain: DataChain,
        error: Optional[FlowExecutionError],
    ) -> ExecutionResult:
        try:
            snapshot = data_chain.snapshot()
        except (TypeError, ValueError, RecursionError) as e:
            logger.error(f"Data chain of execution {execution_id} is not serializable: {e}")
            snapshot = data_chain.safe_snapshot()
            error = PersistenceError(
                f"Could not serialize data chain: {e}",
                detail={'original_error': error.message} if error else None,
            )

        status = ExecutionStatus.FAILED if error else ExecutionStatus.COMPLETED
        updates: Dict[str, Any] = {
            'data_chain': snapshot,
            'completed_at': utcnow(),
        }
        if error:
            updates['error'] = error.message
            updates['error_details'] = self._error_details(error)

        try:
            await self.store.update_execution_status(execution_id, status.value, **updates)
        except Exception as e:
            logger.error(f"Failed to finalize execution {execution_id}: {e}")
            persistence_error = PersistenceError(
                f"Could not finalize execution: {e}",
                detail={'original_error': error.message} if error else None,
            )
            return self._result(execution_id, data_chain, persistence_error)

        if error:
            logger.error(f"Execution failed: {execution_id} - {error.message}")
        else:
            logger.info(f"Execution completed: {execution_id}")

        return self._result(execution_id, data_chain, error)

    @staticmethod
    def _error_details(error: FlowExecutionError) -> Dict[str, Any]:
        details: Dict[str, Any] = {'type': error.error_type}
        if isinstance(error, OperationError) and error.operation_key:
            details['operation_key'] = error.operation_key
        if error.detail is not None:
            try:
                details['detail'] = json.loads(json.dumps(error.detail, default=str))
            except (TypeError, ValueError, RecursionError):
                details['detail'] = repr(error.detail)
        return details

    def _result(
        self,
        execution_id: Optional[str],
        data_chain: DataChain,
        error: Optional[FlowExecutionError],
    ) -> ExecutionResult:
        if error is None:
            return ExecutionResult(
                execution_id=execution_id,
                status=ExecutionStatus.COMPLETED.value,
                data_chain=data_chain,
            )
        return ExecutionResult(
            execution_id=execution_id,
            status=ExecutionStatus.FAILED.value,
            data_chain=data_chain,
            error=error.message,
            error_type=error.error_type,
            error_details=self._error_details(error),
        )
