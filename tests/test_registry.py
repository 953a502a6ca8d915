"""
Tests for OperationRegistry and OperationHandler
"""

import pytest

from visual_flows.flow_engine.registry import (
    OperationHandler,
    OperationRegistry,
    OperationResult,
    number_property,
    short_text_property,
)
from visual_flows.operations import build_default_registry


async def _noop(options, ctx):
    return OperationResult(success=True)


def _handler(type_='noop', schema=None):
    return OperationHandler(type=type_, name='Noop', description='', execute=_noop, options_schema=schema or [])


class TestOperationRegistry:

    def test_register_and_get(self):
        registry = OperationRegistry()
        handler = _handler()
        registry.register('noop', handler)

        assert registry.get('noop') is handler
        assert 'noop' in registry
        assert len(registry) == 1

    def test_unknown_type_returns_none(self):
        assert OperationRegistry().get('missing') is None

    def test_duplicate_registration_rejected(self):
        registry = OperationRegistry([_handler()])
        with pytest.raises(ValueError):
            registry.register('noop', _handler())

    def test_default_registry_catalog(self):
        """Built-in catalog registers every built-in type"""
        registry = build_default_registry()
        assert registry.types() == ['condition', 'http_request', 'log', 'sleep', 'transform']

    def test_default_registries_are_independent(self):
        first = build_default_registry()
        first.register('noop', _handler())
        assert 'noop' not in build_default_registry()


class TestOperationHandler:

    def test_apply_defaults(self):
        handler = _handler(schema=[number_property('retries', 'Retries', '', default_value=3)])

        assert handler.apply_defaults({}) == {'retries': 3}
        assert handler.apply_defaults({'retries': 5}) == {'retries': 5}

    def test_missing_required(self):
        handler = _handler(schema=[
            short_text_property('name', 'Name', '', required=True),
            short_text_property('note', 'Note', ''),
        ])

        assert handler.missing_required({}) == ['name']
        assert handler.missing_required({'name': ''}) == ['name']
        assert handler.missing_required({'name': 'x'}) == []
