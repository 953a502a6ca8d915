"""
Tests for the built-in operation catalog
"""

import json
import logging
from types import MappingProxyType

import httpx
import pytest

from visual_flows.flow_engine.data_chain import DataChain
from visual_flows.flow_engine.registry import OperationContext
from visual_flows.operations import build_default_registry
from visual_flows.operations.condition import condition_handler
from visual_flows.operations.log import log_handler
from visual_flows.operations.transform import transform_handler


def make_ctx(container=None, key='step'):
    return OperationContext(
        container=MappingProxyType(container or {}),
        data_chain=DataChain(),
        flow_id='flow-1',
        execution_id='exec-1',
        operation_id='op-1',
        operation_key=key,
    )


class TestLogOperation:

    @pytest.mark.asyncio
    async def test_logs_message(self, caplog):
        with caplog.at_level(logging.INFO, logger='visual_flows.operations.log'):
            result = await log_handler({'message': 'hello Ada', 'level': 'info'}, make_ctx(key='greet'))

        assert result.success
        assert result.data['logged'] == 'hello Ada'
        assert 'T' in result.data['timestamp']
        assert 'hello Ada' in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_level(self):
        result = await log_handler({'message': 'x', 'level': 'loud'}, make_ctx())
        assert not result.success

    @pytest.mark.asyncio
    async def test_non_string_message(self):
        result = await log_handler({'message': 42, 'level': 'debug'}, make_ctx())
        assert result.data['logged'] == '42'


class TestConditionOperation:

    @pytest.mark.asyncio
    async def test_success_branch(self):
        result = await condition_handler(
            {'rules': {'field': 1200, 'operator': 'GREATER_THAN', 'value': 1000}}, make_ctx(),
        )
        assert result.data == {'_branch': 'success', 'result': True}
        assert result.branch == 'success'

    @pytest.mark.asyncio
    async def test_failure_branch(self):
        result = await condition_handler(
            {'rules': {'field': 'closed', 'operator': 'EQUALS', 'value': 'open'}}, make_ctx(),
        )
        assert result.success
        assert result.branch == 'failure'

    @pytest.mark.asyncio
    async def test_invalid_rules(self):
        result = await condition_handler({'rules': 'yes'}, make_ctx())
        assert not result.success


class TestTransformOperation:

    @pytest.mark.asyncio
    async def test_returns_data(self):
        data = {'a': [1, 2]}
        result = await transform_handler({'data': data}, make_ctx())
        assert result.data is data


class TestSleepOperation:

    @pytest.fixture
    def sleep(self):
        return build_default_registry({'FLOW_SLEEP_MAX_SECONDS': 0.5}).get('sleep')

    @pytest.mark.asyncio
    async def test_sleeps(self, sleep):
        result = await sleep.execute({'seconds': 0}, make_ctx())
        assert result.success
        assert result.data == {'slept': 0.0}

    @pytest.mark.asyncio
    async def test_caps_at_limit(self, sleep):
        """Requests above FLOW_SLEEP_MAX_SECONDS wait for the limit instead"""
        result = await sleep.execute({'seconds': 5}, make_ctx())
        assert result.success
        assert result.data == {'slept': 0.5}

    @pytest.mark.asyncio
    async def test_rejects_negative_and_garbage(self, sleep):
        assert not (await sleep.execute({'seconds': -1}, make_ctx())).success
        assert not (await sleep.execute({'seconds': 'soon'}, make_ctx())).success


class TestHttpRequestOperation:

    @pytest.fixture
    def http_request(self):
        return build_default_registry().get('http_request')

    @pytest.mark.asyncio
    async def test_json_response(self, http_request):
        seen = {}

        def handler(request: httpx.Request):
            seen['method'] = request.method
            seen['url'] = str(request.url)
            seen['body'] = json.loads(request.content)
            return httpx.Response(201, json={'id': 'abc'})

        ctx = make_ctx({'http_transport': httpx.MockTransport(handler)})
        result = await http_request.execute(
            {'url': 'https://api.example.com/items', 'method': 'post', 'body': {'name': 'Ada'}, 'params': {'v': '1'}},
            ctx,
        )

        assert result.success
        assert result.data['status'] == 201
        assert result.data['data'] == {'id': 'abc'}
        assert seen == {'method': 'POST', 'url': 'https://api.example.com/items?v=1', 'body': {'name': 'Ada'}}

    @pytest.mark.asyncio
    async def test_text_response(self, http_request):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text='pong'))
        result = await http_request.execute({'url': 'https://example.com/ping', 'method': 'GET'}, make_ctx({'http_transport': transport}))
        assert result.data['data'] == 'pong'

    @pytest.mark.asyncio
    async def test_error_status_is_failure(self, http_request):
        transport = httpx.MockTransport(lambda request: httpx.Response(404, text='missing'))
        result = await http_request.execute({'url': 'https://example.com/x', 'method': 'GET'}, make_ctx({'http_transport': transport}))

        assert not result.success
        assert '404' in result.error
        assert result.error_detail == {'status': 404, 'body': 'missing'}

    @pytest.mark.asyncio
    async def test_transport_error_is_failure(self, http_request):
        def handler(request):
            raise httpx.ConnectError('refused', request=request)

        result = await http_request.execute(
            {'url': 'https://example.com/x', 'method': 'GET'}, make_ctx({'http_transport': httpx.MockTransport(handler)}),
        )
        assert not result.success
        assert 'refused' in result.error

    @pytest.mark.asyncio
    async def test_unsupported_method(self, http_request):
        result = await http_request.execute({'url': 'https://example.com', 'method': 'TRACE'}, make_ctx())
        assert not result.success
