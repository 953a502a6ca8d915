"""
Tests for the flow runs blueprint
"""

from visual_flows.services.flow_service import VisualFlowService


def create_flow(status='active'):
    return VisualFlowService().create_complete_flow(
        flow={'name': 'Greet', 'status': status},
        operations=[{
            'operation_key': 'greet',
            'operation_type': 'log',
            'options': {'message': 'hello {{ $trigger.payload.name }}'},
        }],
        connections=[{'source_id': 'trigger', 'target_id': 'greet'}],
    )


class TestFlowRunRoutes:

    def test_execute_flow(self, app, client):
        flow_id = create_flow().id

        response = client.post(
            f'/api/v1/visual-flows/{flow_id}/execute',
            json={'trigger_data': {'name': 'Ada'}, 'triggered_by': 'user:1'},
        )

        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'completed'
        assert body['data_chain']['greet']['logged'] == 'hello Ada'
        assert body['execution_id']

    def test_execute_inactive_flow(self, app, client):
        flow_id = create_flow(status='draft').id

        response = client.post(f'/api/v1/visual-flows/{flow_id}/execute', json={})

        assert response.status_code == 422
        body = response.get_json()
        assert body['status'] == 'failed'
        assert body['error_type'] == 'configuration'

    def test_execute_rejects_non_object_body(self, app, client):
        response = client.post('/api/v1/visual-flows/any/execute', json=[1, 2])
        assert response.status_code == 400

    def test_get_execution_with_logs(self, app, client):
        flow_id = create_flow().id
        execution_id = client.post(
            f'/api/v1/visual-flows/{flow_id}/execute', json={'trigger_data': {'name': 'Ada'}},
        ).get_json()['execution_id']

        response = client.get(f'/api/v1/visual-flows/executions/{execution_id}')

        assert response.status_code == 200
        body = response.get_json()
        assert body['status'] == 'completed'
        assert [log['operation_key'] for log in body['logs']] == ['$trigger', 'greet', 'greet']

    def test_get_missing_execution(self, app, client):
        response = client.get('/api/v1/visual-flows/executions/missing')
        assert response.status_code == 404
        assert response.get_json() == {'error': 'Execution not found'}

    def test_list_executions(self, app, client):
        flow_id = create_flow().id
        for _ in range(2):
            client.post(f'/api/v1/visual-flows/{flow_id}/execute', json={})

        response = client.get(f'/api/v1/visual-flows/{flow_id}/executions')

        assert response.status_code == 200
        assert response.get_json()['count'] == 2

    def test_list_executions_bad_limit(self, app, client):
        response = client.get('/api/v1/visual-flows/x/executions?limit=many')
        assert response.status_code == 400
