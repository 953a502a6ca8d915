"""
Operation contract and registry

A handler is registered under a type tag ("log", "condition", ...) and is
invoked by the engine with already-interpolated options.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Callable, Awaitable, Mapping
from enum import Enum


class PropertyType(str, Enum):
    """Types of operation options"""
    SHORT_TEXT = "SHORT_TEXT"
    LONG_TEXT = "LONG_TEXT"
    NUMBER = "NUMBER"
    CHECKBOX = "CHECKBOX"
    DROPDOWN = "DROPDOWN"
    ARRAY = "ARRAY"
    OBJECT = "OBJECT"
    JSON = "JSON"


@dataclass
class OptionProperty:
    """
    Option definition for an operation
    """
    name: str
    display_name: str
    description: str
    type: PropertyType
    required: bool = False
    default_value: Any = None

    # For DROPDOWN
    options: Optional[List[Dict[str, str]]] = None  # [{"label": "...", "value": "..."}]


@dataclass
class OperationContext:
    """
    Context provided to handlers during execution
    """
    # Read-only dependency scope shared by every handler of the run
    container: Mapping[str, Any]

    # The run's data chain
    data_chain: Mapping[str, Any]

    flow_id: str
    execution_id: str
    operation_id: str
    operation_key: str


@dataclass
class OperationResult:
    """Result from executing an operation"""
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_detail: Optional[Any] = None

    # Branch discriminator for condition operations ("success" / "failure")
    branch: Optional[str] = None


OperationExecutor = Callable[[Dict[str, Any], OperationContext], Awaitable[OperationResult]]


@dataclass
class OperationHandler:
    """
    Operation handler definition
    """
    type: str
    name: str
    description: str
    execute: OperationExecutor
    options_schema: List[OptionProperty] = field(default_factory=list)
    category: str = "general"

    def apply_defaults(self, options: Dict[str, Any]) -> Dict[str, Any]:
        """Fill in schema defaults for options that were not provided"""
        if not isinstance(options, Mapping):
            return options
        merged = dict(options)
        for prop in self.options_schema:
            if merged.get(prop.name) is None and prop.default_value is not None:
                merged[prop.name] = prop.default_value
        return merged

    def missing_required(self, options: Dict[str, Any]) -> List[str]:
        """Names of required options that are absent or empty"""
        if not isinstance(options, Mapping):
            return [prop.name for prop in self.options_schema if prop.required]
        return [
            prop.name for prop in self.options_schema
            if prop.required and options.get(prop.name) in (None, '')
        ]


class OperationRegistry:
    """
    Maps operation type tags to handlers.

    Built once at startup and passed to the engine; there is no global instance.
    """

    def __init__(self, handlers: Optional[List[OperationHandler]] = None):
        self._handlers: Dict[str, OperationHandler] = {}
        for handler in handlers or []:
            self.register(handler.type, handler)

    def register(self, operation_type: str, handler: OperationHandler):
        """
        Register a handler.

        Raises:
            ValueError: If the type is already registered
        """
        if operation_type in self._handlers:
            raise ValueError(f"Operation type already registered: {operation_type}")
        self._handlers[operation_type] = handler

    def get(self, operation_type: str) -> Optional[OperationHandler]:
        """Get a handler by type tag"""
        return self._handlers.get(operation_type)

    def get_all(self) -> Dict[str, OperationHandler]:
        """Get all registered handlers"""
        return self._handlers.copy()

    def types(self) -> List[str]:
        return sorted(self._handlers)

    def __contains__(self, operation_type: str) -> bool:
        return operation_type in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


# Helper functions for creating common option properties
def short_text_property(
    name: str,
    display_name: str,
    description: str,
    required: bool = False,
    default_value: Any = None,
) -> OptionProperty:
    """Create a short text option"""
    return OptionProperty(
        name=name,
        display_name=display_name,
        description=description,
        type=PropertyType.SHORT_TEXT,
        required=required,
        default_value=default_value,
    )


def number_property(
    name: str,
    display_name: str,
    description: str,
    required: bool = False,
    default_value: Any = None,
) -> OptionProperty:
    """Create a number option"""
    return OptionProperty(
        name=name,
        display_name=display_name,
        description=description,
        type=PropertyType.NUMBER,
        required=required,
        default_value=default_value,
    )


def dropdown_property(
    name: str,
    display_name: str,
    description: str,
    options: List[Dict[str, str]],
    required: bool = False,
    default_value: Any = None,
) -> OptionProperty:
    """Create a dropdown option"""
    return OptionProperty(
        name=name,
        display_name=display_name,
        description=description,
        type=PropertyType.DROPDOWN,
        required=required,
        options=options,
        default_value=default_value,
    )


def json_property(
    name: str,
    display_name: str,
    description: str,
    required: bool = False,
) -> OptionProperty:
    """Create a free-form JSON option"""
    return OptionProperty(
        name=name,
        display_name=display_name,
        description=description,
        type=PropertyType.JSON,
        required=required,
    )
