"""
Tests for VariableResolver / interpolate
"""

import pytest

from visual_flows.flow_engine.data_chain import DataChain
from visual_flows.flow_engine.variable_resolver import VariableResolver, interpolate, split_path


@pytest.fixture
def chain():
    chain = DataChain(payload={'name': 'Ada', 'amount': 1000, 'tags': ['a', 'b']}, triggered_by='user:1')
    chain.set_output('fetch', {'records': [{'id': 'r1'}, {'id': 'r2'}], 'content-type': 'json'})
    return chain


class TestSplitPath:

    def test_dotted_and_indexed(self):
        assert split_path('a.b[0].c') == ['a', 'b', 0, 'c']

    def test_quoted_key(self):
        assert split_path('fetch["content-type"]') == ['fetch', 'content-type']

    def test_strips_whitespace(self):
        assert split_path(' $trigger.payload ') == ['$trigger', 'payload']


class TestVariableResolver:
    """Test variable resolution against a data chain"""

    def test_trigger_payload_variable(self, chain):
        """Resolve a trigger payload field"""
        assert interpolate('{{ $trigger.payload.name }}', chain) == 'Ada'

    def test_preserve_type_int(self, chain):
        """A whole-string expression keeps the native type"""
        result = interpolate('{{ $trigger.payload.amount }}', chain)
        assert result == 1000
        assert isinstance(result, int)

    def test_last_identity(self, chain):
        """{{ $last }} returns the very object stored on the chain"""
        assert interpolate('{{ $last }}', chain) is chain['$last']
        assert interpolate('{{$last}}', chain) is chain['fetch']

    def test_array_access(self, chain):
        assert interpolate('{{ fetch.records[1].id }}', chain) == 'r2'
        assert interpolate('{{ $last.records[0].id }}', chain) == 'r1'

    def test_quoted_key_access(self, chain):
        assert interpolate('{{ fetch["content-type"] }}', chain) == 'json'

    def test_string_interpolation(self, chain):
        """Embedded expressions are rendered as text"""
        result = interpolate('Hi {{ $trigger.payload.name }}, you owe {{ $trigger.payload.amount }}', chain)
        assert result == 'Hi Ada, you owe 1000'

    def test_embedded_list_rendered_as_json(self, chain):
        assert interpolate('tags: {{ $trigger.payload.tags }}', chain) == 'tags: ["a", "b"]'

    def test_unresolved_whole_string_is_none(self, chain):
        assert interpolate('{{ missing.path }}', chain) is None

    def test_unresolved_embedded_is_empty(self, chain):
        """Template syntax never leaks into the output"""
        assert interpolate('x{{ missing }}y', chain) == 'xy'

    def test_index_out_of_range(self, chain):
        assert interpolate('{{ fetch.records[5].id }}', chain) is None

    def test_primitives_pass_through(self, chain):
        for value in (42, 3.5, True, None):
            assert interpolate(value, chain) is value

    def test_plain_string_unchanged(self, chain):
        assert interpolate('no templates here', chain) == 'no templates here'

    def test_dict_and_list_resolution(self, chain):
        """Containers are walked recursively, keys untouched"""
        data = {
            '{{ $trigger.payload.name }}': ['{{ $trigger.payload.name }}', 'static'],
            'nested': {'amount': '{{ $trigger.payload.amount }}'},
        }
        result = interpolate(data, chain)
        assert result == {
            '{{ $trigger.payload.name }}': ['Ada', 'static'],
            'nested': {'amount': 1000},
        }

    def test_tuple_resolution(self, chain):
        assert interpolate(('{{ $trigger.payload.name }}', 1), chain) == ('Ada', 1)

    def test_accountability(self, chain):
        assert interpolate('{{ $accountability.triggered_by }}', chain) == 'user:1'

    def test_validate_lists_unresolved_paths(self, chain):
        resolver = VariableResolver(chain)
        unresolved = resolver.validate({'a': '{{ $trigger.payload.name }}', 'b': ['{{ nope.x }}']})
        assert unresolved == ['nope.x']

    def test_available_variables(self, chain):
        keys = VariableResolver(chain).get_available_variables()
        assert '$trigger' in keys
        assert 'fetch' in keys
