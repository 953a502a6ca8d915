"""
Data Chain - per-execution context shared between operations

Holds the last output of every operation under its operation_key, plus the
reserved keys:
- $trigger        {payload, event, timestamp}
- $accountability {triggered_by}
- $env            allow-listed environment snapshot (read-only)
- $last           output of the most recently completed operation
"""

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

RESERVED_PREFIX = '$'

TRIGGER_KEY = '$trigger'
ACCOUNTABILITY_KEY = '$accountability'
ENV_KEY = '$env'
LAST_KEY = '$last'


def is_reserved_key(key: str) -> bool:
    return key.startswith(RESERVED_PREFIX)


class DataChain(Mapping):
    """
    Mutable, keyed context threaded through one execution.

    Reads behave like a dict. Writes only go through set_output(), which
    refuses reserved keys and keeps $last in sync.
    """

    def __init__(
        self,
        payload: Any = None,
        event: Optional[str] = None,
        triggered_by: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        timestamp: Optional[str] = None,
    ):
        self._data: Dict[str, Any] = {
            TRIGGER_KEY: {
                'payload': payload if payload is not None else {},
                'event': event,
                'timestamp': timestamp or datetime.now(timezone.utc).isoformat(),
            },
            ACCOUNTABILITY_KEY: {
                'triggered_by': triggered_by,
            },
            ENV_KEY: MappingProxyType(dict(env or {})),
            LAST_KEY: None,
        }

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"DataChain(keys={list(self._data.keys())})"

    @property
    def trigger(self) -> Dict[str, Any]:
        return self._data[TRIGGER_KEY]

    @property
    def last(self) -> Any:
        return self._data[LAST_KEY]

    def set_output(self, operation_key: str, data: Any) -> None:
        """
        Record an operation's output (last write wins) and update $last.

        Raises:
            ValueError: If operation_key is reserved
        """
        if is_reserved_key(operation_key):
            raise ValueError(f"Operation key '{operation_key}' uses the reserved '$' prefix")

        self._data[operation_key] = data
        self._data[LAST_KEY] = data
        logger.debug(f"Data chain updated: {operation_key}")

    def operation_keys(self):
        return [key for key in self._data if not is_reserved_key(key)]

    def snapshot(self) -> Dict[str, Any]:
        """
        JSON-safe deep copy, suitable for persisting on the execution record.
        """
        plain = {key: self._plain(value) for key, value in self._data.items()}
        return json.loads(json.dumps(plain, default=str))

    def safe_snapshot(self) -> Dict[str, Any]:
        """
        Best-effort snapshot(): values that cannot be serialized are replaced
        by a placeholder instead of raising.
        """
        result: Dict[str, Any] = {}
        for key, value in self._data.items():
            try:
                result[key] = json.loads(json.dumps(self._plain(value), default=str))
            except (TypeError, ValueError, RecursionError):
                result[key] = f"<unserializable {type(value).__name__}>"
        return result

    @classmethod
    def _plain(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {k: cls._plain(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [cls._plain(v) for v in value]
        return value
