"""
Flow Runs API - Routes for running flows and viewing their executions

Endpoints:
- POST /api/v1/visual-flows/:flow_id/execute - Run a flow
- GET /api/v1/visual-flows/:flow_id/executions - List executions of a flow
- GET /api/v1/visual-flows/executions/:id - Get execution with its logs
"""

import asyncio
import logging

from flask import Blueprint, current_app, jsonify, request

from visual_flows.flow_engine.executor import ExecutionOptions, FlowExecutionEngine
from visual_flows.services.env_allowlist import env_provider_from_config
from visual_flows.services.flow_service import VisualFlowService

logger = logging.getLogger(__name__)

flow_runs_bp = Blueprint('flow_runs', __name__, url_prefix='/api/v1/visual-flows')


def _engine(service: VisualFlowService) -> FlowExecutionEngine:
    return FlowExecutionEngine(
        store=service,
        registry=current_app.extensions['visual_flows.registry'],
        container=current_app.extensions.get('visual_flows.container'),
        env_provider=env_provider_from_config(current_app.config),
    )


@flow_runs_bp.route('/<flow_id>/execute', methods=['POST'])
def execute_flow(flow_id):
    """
    Run a flow synchronously.

    Body:
        trigger_data: Payload exposed as $trigger.payload
        triggered_by: Who or what started the run
        metadata: Free-form run metadata

    Returns 200 when the run completed and 422 when it failed; both carry
    the execution id so the logs can be fetched.
    """
    body = request.get_json(silent=True) or {}
    if not isinstance(body, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    metadata = body.get('metadata') or {}
    if not isinstance(metadata, dict):
        return jsonify({'error': 'metadata must be an object'}), 400

    service = VisualFlowService()
    result = asyncio.run(_engine(service).execute(
        flow_id,
        trigger_data=body.get('trigger_data'),
        options=ExecutionOptions(triggered_by=body.get('triggered_by'), metadata=metadata),
    ))

    payload = {
        'execution_id': result.execution_id,
        'status': result.status,
        'data_chain': result.data_chain.safe_snapshot(),
    }
    if not result.succeeded:
        payload['error'] = result.error
        payload['error_type'] = result.error_type
        payload['error_details'] = result.error_details
        logger.info(f"Flow {flow_id} run {result.execution_id} failed: {result.error}")
        return jsonify(payload), 422

    return jsonify(payload), 200


@flow_runs_bp.route('/<flow_id>/executions', methods=['GET'])
def list_flow_executions(flow_id):
    """
    List executions of a flow, newest first.

    Query params:
        limit: Max results (default: 50)
    """
    try:
        limit = int(request.args.get('limit', 50))
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400

    executions = VisualFlowService().list_flow_executions(flow_id, limit=limit)

    return jsonify({
        'executions': [execution.to_dict() for execution in executions],
        'count': len(executions),
    }), 200


@flow_runs_bp.route('/executions/<execution_id>', methods=['GET'])
def get_execution(execution_id):
    """Get execution details with its ordered log entries."""
    execution = VisualFlowService().get_execution_with_logs(execution_id)
    if not execution:
        return jsonify({'error': 'Execution not found'}), 404

    return jsonify(execution.to_dict(include_logs=True)), 200
