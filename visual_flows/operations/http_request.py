"""
HTTP Request operation - calls an external endpoint with httpx
"""
import logging

import httpx

from visual_flows.flow_engine.registry import (
    OperationContext,
    OperationHandler,
    OperationResult,
    dropdown_property,
    json_property,
    number_property,
    short_text_property,
)

logger = logging.getLogger(__name__)

METHODS = ['GET', 'POST', 'PUT', 'PATCH', 'DELETE']


def _response_body(response: httpx.Response):
    if 'application/json' in response.headers.get('content-type', ''):
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


def make_http_request_operation(default_timeout: float) -> OperationHandler:

    async def http_request_handler(options: dict, ctx: OperationContext) -> OperationResult:
        """
        Send the request; 4xx/5xx responses are reported as failures.

        A transport placed in the dependency scope under 'http_transport'
        is used instead of the network.
        """
        method = str(options.get('method', 'GET')).upper()
        if method not in METHODS:
            return OperationResult(success=False, error=f"Unsupported method: {method}")

        url = options.get('url')
        body = options.get('body')

        request_kwargs = {
            'headers': options.get('headers') or {},
            'params': options.get('params') or {},
        }
        if body is not None:
            if isinstance(body, (dict, list)):
                request_kwargs['json'] = body
            else:
                request_kwargs['content'] = str(body)

        try:
            async with httpx.AsyncClient(
                timeout=float(options.get('timeout') or default_timeout),
                transport=ctx.container.get('http_transport'),
            ) as client:
                response = await client.request(method, url, **request_kwargs)
                response.raise_for_status()

                return OperationResult(
                    success=True,
                    data={
                        'status': response.status_code,
                        'headers': dict(response.headers),
                        'data': _response_body(response),
                    }
                )

        except httpx.HTTPStatusError as e:
            return OperationResult(
                success=False,
                error=f"HTTP {e.response.status_code} from {url}",
                error_detail={'status': e.response.status_code, 'body': e.response.text},
            )
        except httpx.HTTPError as e:
            logger.warning(f"HTTP request to {url} failed: {e}")
            return OperationResult(success=False, error=f"Request to {url} failed: {e}")

    return OperationHandler(
        type='http_request',
        name='HTTP Request',
        description='Call an external HTTP endpoint',
        category='integration',
        execute=http_request_handler,
        options_schema=[
            short_text_property('url', 'URL', 'Endpoint to call', required=True),
            dropdown_property(
                'method',
                'Method',
                'HTTP method',
                options=[{'label': m, 'value': m} for m in METHODS],
                default_value='GET',
            ),
            json_property('headers', 'Headers', 'Request headers'),
            json_property('params', 'Query Params', 'Query string parameters'),
            json_property('body', 'Body', 'JSON body (objects/arrays) or raw text'),
            number_property('timeout', 'Timeout', 'Seconds before giving up'),
        ],
    )
