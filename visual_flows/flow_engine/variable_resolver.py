"""
Variable Resolver - Resolves {{ path }} references against the data chain

Supports:
- {{ $trigger.payload.field }} - Access trigger payload
- {{ operationKey.field }} - Access a previous operation's output
- {{ $last }} - Output of the most recently completed operation
- {{ $env.NAME }} - Allow-listed environment values
- Nested paths: {{ $trigger.payload.deal.properties.name }}
- Array access: {{ $last.records[0].id }}
- Quoted keys: {{ fetch["content-type"] }}
"""

import json
import re
from collections.abc import Mapping
from typing import Any, List, Optional
import logging

logger = logging.getLogger(__name__)


# Pattern to match {{variable.path}}
VARIABLE_PATTERN = re.compile(r'\{\{([^}]+)\}\}')

# One path segment: [0], ["key"] / ['key'], or a bare name
PATH_SEGMENT = re.compile(r'\[(-?\d+)\]|\[\s*["\']([^"\']*)["\']\s*\]|([^.\[\]]+)')


def split_path(path: str) -> List[Any]:
    """
    Split "a.b[0]['c d']" into ['a', 'b', 0, 'c d'].
    """
    segments: List[Any] = []
    for index, quoted, name in PATH_SEGMENT.findall(path.strip()):
        if index:
            segments.append(int(index))
        elif quoted:
            segments.append(quoted)
        elif name.strip():
            segments.append(name.strip())
    return segments


def _to_text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, default=str)
    return str(value)


class VariableResolver:
    """
    Resolves variable references in operation options.

    Examples:
        {{ $trigger.payload.deal_id }} -> "12345"
        {{ getContact.properties.firstname }} -> "John"
        {{ $last.line_items[0].name }} -> "Product A"
        "Hello {{ $trigger.payload.name }}" -> "Hello Ada"
    """

    def __init__(self, chain: Optional[Mapping] = None):
        """
        Args:
            chain: Data chain (or any mapping) to resolve paths against
        """
        self.chain = chain if chain is not None else {}

    def resolve(self, value: Any) -> Any:
        """
        Resolve variables in value (recursively handles dicts, lists, strings).

        Args:
            value: Value to resolve (can be string, dict, list, or primitive)

        Returns:
            Value with all {{variables}} resolved
        """
        if isinstance(value, str):
            return self._resolve_string(value)
        elif isinstance(value, Mapping):
            return {k: self.resolve(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self.resolve(item) for item in value]
        elif isinstance(value, tuple):
            return tuple(self.resolve(item) for item in value)
        else:
            # Primitive value (int, bool, None, etc)
            return value

    def _resolve_string(self, text: str) -> Any:
        """
        If the ENTIRE string is a single variable reference, return the actual value.
        Otherwise, do string replacement.

        Examples:
            "{{ $trigger.payload.amount }}" -> 1000 (int)
            "Amount: {{ $trigger.payload.amount }}" -> "Amount: 1000" (string)
        """
        if '{{' not in text:
            return text

        match = VARIABLE_PATTERN.fullmatch(text)
        if match:
            return self.resolve_path(match.group(1))

        def replace_var(match):
            return _to_text(self.resolve_path(match.group(1)))

        return VARIABLE_PATTERN.sub(replace_var, text)

    def resolve_path(self, path: str) -> Any:
        """
        Resolve a path like "$trigger.payload.name" or "fetchUser.items[0].id".

        Returns:
            Resolved value, or None if any segment is missing
        """
        segments = split_path(path)

        if not segments:
            logger.warning(f"Empty variable path: {path!r}")
            return None

        current: Any = self.chain
        for segment in segments:
            if isinstance(current, Mapping):
                key = str(segment)
                if key not in current:
                    logger.debug(f"Field not found in path {path!r}: {key}")
                    return None
                current = current[key]
            elif isinstance(current, (list, tuple)):
                try:
                    index = int(segment)
                except (TypeError, ValueError):
                    logger.debug(f"Invalid array index in path {path!r}: {segment}")
                    return None
                if not -len(current) <= index < len(current):
                    logger.debug(f"Index {index} out of range in path {path!r}")
                    return None
                current = current[index]
            else:
                logger.debug(f"Cannot navigate {segment!r} on {type(current).__name__} in path {path!r}")
                return None

        return current

    def validate(self, value: Any) -> List[str]:
        """
        Validate that all variables in value can be resolved.

        Returns:
            List of unresolved variable paths (empty if all valid)
        """
        unresolved = []

        def check_value(val):
            if isinstance(val, str):
                for match in VARIABLE_PATTERN.finditer(val):
                    var_path = match.group(1).strip()
                    if self.resolve_path(var_path) is None:
                        unresolved.append(var_path)
            elif isinstance(val, Mapping):
                for v in val.values():
                    check_value(v)
            elif isinstance(val, (list, tuple)):
                for item in val:
                    check_value(item)

        check_value(value)
        return unresolved

    def get_available_variables(self) -> List[str]:
        """
        Top-level keys that can start a path, for documentation/debugging.
        """
        return list(self.chain.keys())


def interpolate(value: Any, chain: Mapping) -> Any:
    """Resolve every {{ path }} in value against chain."""
    return VariableResolver(chain).resolve(value)
