"""
Environment snapshot exposed to flows as $env.

Only variables named in FLOW_ENV_ALLOWLIST, or starting with FLOW_ENV_PREFIX
(default FLOW_PUBLIC_), are visible. Everything else stays out of the data
chain and therefore out of execution logs.
"""
import os
from typing import Callable, Dict, Iterable, Mapping, Optional

from visual_flows.config import Config


def get_allowed_env_vars(
    allowlist: Optional[Iterable[str]] = None,
    prefix: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    allowed = set(Config.FLOW_ENV_ALLOWLIST if allowlist is None else allowlist)
    prefix = Config.FLOW_ENV_PREFIX if prefix is None else prefix
    environ = os.environ if environ is None else environ

    return {
        name: value
        for name, value in environ.items()
        if name in allowed or (prefix and name.startswith(prefix))
    }


def env_provider_from_config(config: Mapping) -> Callable[[], Dict[str, str]]:
    """Bind the allowlist settings of a Flask config mapping."""
    allowlist = list(config.get('FLOW_ENV_ALLOWLIST', []))
    prefix = config.get('FLOW_ENV_PREFIX', Config.FLOW_ENV_PREFIX)

    def provider() -> Dict[str, str]:
        return get_allowed_env_vars(allowlist=allowlist, prefix=prefix)

    return provider
