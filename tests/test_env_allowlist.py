"""
Tests for the $env allowlist provider
"""

from visual_flows.services.env_allowlist import env_provider_from_config, get_allowed_env_vars


class TestEnvAllowlist:

    def test_allowlist_and_prefix(self):
        environ = {
            'REGION': 'eu',
            'FLOW_PUBLIC_SITE': 'shop',
            'DATABASE_URL': 'postgres://secret',
            'SECRET_KEY': 'x',
        }
        allowed = get_allowed_env_vars(allowlist=['REGION'], prefix='FLOW_PUBLIC_', environ=environ)
        assert allowed == {'REGION': 'eu', 'FLOW_PUBLIC_SITE': 'shop'}

    def test_empty_prefix_only_allowlist(self):
        allowed = get_allowed_env_vars(allowlist=[], prefix='', environ={'A': '1'})
        assert allowed == {}

    def test_provider_from_config(self, monkeypatch):
        monkeypatch.setenv('FLOW_PUBLIC_COLOR', 'blue')
        monkeypatch.setenv('VF_TEST_LISTED', 'yes')
        monkeypatch.setenv('VF_TEST_HIDDEN', 'no')

        provider = env_provider_from_config({'FLOW_ENV_ALLOWLIST': ['VF_TEST_LISTED'], 'FLOW_ENV_PREFIX': 'FLOW_PUBLIC_'})
        env = provider()

        assert env['FLOW_PUBLIC_COLOR'] == 'blue'
        assert env['VF_TEST_LISTED'] == 'yes'
        assert 'VF_TEST_HIDDEN' not in env
