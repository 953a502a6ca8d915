"""
Step Processor - Executes a single flow operation

Handles:
- Resolving the handler for the operation type
- Interpolating options against the data chain
- Writing the running / success / failure log entries
- Updating the data chain on success
- Converting handler failures and exceptions into a StepFailure value
"""

import json
import logging
import time
import traceback
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from visual_flows.flow_engine.data_chain import DataChain
from visual_flows.flow_engine.errors import (
    ConfigurationError,
    FlowExecutionError,
    OperationError,
    PersistenceError,
)
from visual_flows.flow_engine.registry import (
    OperationContext,
    OperationRegistry,
    OperationResult,
)
from visual_flows.flow_engine.store import FlowOperation, FlowStore
from visual_flows.flow_engine.variable_resolver import VariableResolver
from visual_flows.models.execution_log import LogStatus

logger = logging.getLogger(__name__)


@dataclass
class StepSuccess:
    operation: FlowOperation
    result: OperationResult


@dataclass
class StepFailure:
    operation: Optional[FlowOperation]
    error: FlowExecutionError


StepOutcome = Union[StepSuccess, StepFailure]


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _detail_text(detail: Any) -> Optional[str]:
    if detail is None or isinstance(detail, str):
        return detail
    try:
        return json.dumps(detail, default=str)
    except (TypeError, ValueError, RecursionError):
        return repr(detail)


class StepProcessor:
    """
    Processes individual operations of a run.

    One instance is bound to one execution: it shares that run's store,
    data chain and dependency scope.
    """

    def __init__(
        self,
        registry: OperationRegistry,
        store: FlowStore,
        data_chain: DataChain,
        flow_id: str,
        execution_id: str,
        container: Mapping[str, Any],
    ):
        self.registry = registry
        self.store = store
        self.data_chain = data_chain
        self.flow_id = flow_id
        self.execution_id = execution_id
        self.container = container

    async def process(self, operation: FlowOperation) -> StepOutcome:
        """
        Run one operation and record it.

        Returns:
            StepSuccess, or StepFailure carrying a ConfigurationError,
            OperationError or PersistenceError
        """
        key = operation.operation_key
        logger.info(f"Processing operation: {key} ({operation.operation_type})")

        # 1. Resolve handler
        handler = self.registry.get(operation.operation_type)
        if handler is None:
            error = ConfigurationError(f"Unknown operation type: {operation.operation_type}")
            logger.error(f"{error.message} (operation {key})")
            return StepFailure(operation, error)

        # 2. Interpolate options against the current chain
        options = operation.options if operation.options is not None else {}
        resolve_error: Optional[OperationError] = None
        try:
            resolved_options = handler.apply_defaults(VariableResolver(self.data_chain).resolve(options))
        except Exception as e:
            logger.error(f"Could not resolve options for {key}: {e}")
            resolved_options = options
            resolve_error = OperationError(
                f"Could not resolve options: {e}", operation_key=key, detail=traceback.format_exc(),
            )
        logger.debug(f"Resolved options for {key}: {resolved_options}")

        try:
            await self._log(operation, LogStatus.RUNNING, input_data=resolved_options)
        except PersistenceError as e:
            return StepFailure(operation, e)

        start = time.perf_counter()

        if resolve_error is not None:
            return await self._fail(operation, resolved_options, resolve_error, start)

        if not isinstance(resolved_options, Mapping):
            error = OperationError(
                f"Options must be an object, got {type(resolved_options).__name__}",
                operation_key=key,
            )
            return await self._fail(operation, resolved_options, error, start)

        # 3. Validate required options
        missing = handler.missing_required(resolved_options)
        if missing:
            error = OperationError(
                f"Missing required options: {', '.join(missing)}",
                operation_key=key,
            )
            return await self._fail(operation, resolved_options, error, start)

        context = OperationContext(
            container=self.container,
            data_chain=self.data_chain,
            flow_id=self.flow_id,
            execution_id=self.execution_id,
            operation_id=operation.id,
            operation_key=key,
        )

        # 4. Execute handler
        try:
            result = await handler.execute(resolved_options, context)
        except Exception as e:
            logger.error(f"Exception in operation {key}: {e}")
            error = OperationError(str(e) or type(e).__name__, operation_key=key, detail=traceback.format_exc())
            return await self._fail(operation, resolved_options, error, start)

        if not isinstance(result, OperationResult):
            error = OperationError(
                f"Handler for '{operation.operation_type}' returned {type(result).__name__}, expected OperationResult",
                operation_key=key,
            )
            return await self._fail(operation, resolved_options, error, start)

        if not result.success:
            error = OperationError(result.error or 'Operation failed', operation_key=key, detail=result.error_detail)
            logger.error(f"Operation failed: {key} - {error.message}")
            return await self._fail(operation, resolved_options, error, start)

        # 5. Record output
        self.data_chain.set_output(key, result.data)

        try:
            await self._log(
                operation,
                LogStatus.SUCCESS,
                input_data=resolved_options,
                output_data=result.data,
                duration_ms=_elapsed_ms(start),
            )
        except PersistenceError as e:
            return StepFailure(operation, e)

        logger.info(f"Operation succeeded: {key}")
        return StepSuccess(operation, result)

    async def _fail(
        self,
        operation: FlowOperation,
        resolved_options: Any,
        error: OperationError,
        start: float,
    ) -> StepFailure:
        try:
            await self._log(
                operation,
                LogStatus.FAILURE,
                input_data=resolved_options,
                error=error.message,
                error_stack=_detail_text(error.detail),
                duration_ms=_elapsed_ms(start),
            )
        except PersistenceError as e:
            return StepFailure(operation, e)
        return StepFailure(operation, error)

    async def _log(self, operation: FlowOperation, status: LogStatus, **fields):
        try:
            await self.store.add_execution_log(
                execution_id=self.execution_id,
                operation_id=operation.id,
                operation_key=operation.operation_key,
                status=status.value,
                **fields,
            )
        except Exception as e:
            logger.error(f"Failed to record {status.value} log for {operation.operation_key}: {e}")
            raise PersistenceError(
                f"Could not record execution log for '{operation.operation_key}': {e}",
                detail=traceback.format_exc(),
            ) from e
