"""
NoteGate — Operation Registry
===============================

What:  A static, per-interface table mapping wire method names to operation
       descriptors (ordered parameter names, parameter types, return type).
How:   Interface methods are declared with the `@registry.operation(...)`
       decorator. The decorator reads the method's signature and type hints
       once, at import time, and freezes them into an `OperationDescriptor`
       with a pydantic `TypeAdapter` per parameter. Nothing is discovered
       per request.
Who:   Built by `notegate.services.operations`; read by the dispatch gateway.

Wire names:
    Operations are registered under an explicit camelCase name
    ("createTag"). Parameter wire names are the camelCase form of the
    Python parameter names (notebook_guid → "notebookGuid").

Usage::

    note_store = OperationRegistry("NoteStore")

    class NoteStoreOperations(abc.ABC):
        @note_store.operation("createTag")
        @abc.abstractmethod
        async def create_tag(self, tag: Tag) -> Tag: ...

    note_store.get("createTag").parameter_names  # ("tag",)
"""

import inspect
import logging
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Tuple

from pydantic import TypeAdapter
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)
_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


@dataclass(frozen=True)
class ParameterSpec:
    """One formal parameter of an operation."""

    name: str              # wire name, the JSON field looked up in the payload
    attribute: str         # Python parameter name
    annotation: Any
    adapter: TypeAdapter


@dataclass(frozen=True)
class OperationDescriptor:
    """
    Everything needed to dispatch one operation.

    `parameters` is None when the declared signature could not be described
    (variadic or unannotated parameters, unresolvable type hints). Such an
    operation stays listed but cannot be dispatched.
    """

    name: str
    attribute: str
    parameters: Optional[Tuple[ParameterSpec, ...]]
    return_type: Any

    @property
    def parameter_names(self) -> Optional[Tuple[str, ...]]:
        if self.parameters is None:
            return None
        return tuple(p.name for p in self.parameters)

    @property
    def return_type_name(self) -> str:
        if self.return_type is type(None):
            return "None"
        return getattr(self.return_type, "__name__", None) or str(self.return_type).replace(
            "typing.", ""
        )


def describe_operation(fn: Callable, name: str) -> OperationDescriptor:
    """Build the descriptor for `fn` registered under wire name `name`."""
    try:
        signature = inspect.signature(fn)
        hints = typing.get_type_hints(fn)
    except (NameError, TypeError, ValueError) as exc:
        logger.warning("operation %r: cannot read signature of %s: %s", name, fn.__qualname__, exc)
        return OperationDescriptor(name, fn.__name__, None, Any)

    specs = []
    for index, param in enumerate(signature.parameters.values()):
        if index == 0 and param.name == "self":
            continue
        if param.kind in _VARIADIC or param.name not in hints:
            logger.warning(
                "operation %r: parameter %r of %s is variadic or unannotated",
                name, param.name, fn.__qualname__,
            )
            return OperationDescriptor(name, fn.__name__, None, hints.get("return", Any))
        annotation = hints[param.name]
        specs.append(
            ParameterSpec(
                name=to_camel(param.name),
                attribute=param.name,
                annotation=annotation,
                adapter=TypeAdapter(annotation),
            )
        )
    return OperationDescriptor(name, fn.__name__, tuple(specs), hints.get("return", Any))


class OperationRegistry:
    """
    A fixed set of named operations belonging to one operations interface.

    Names are unique: registering the same wire name twice raises
    ValueError at import time, so lookup by name alone is unambiguous.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._operations: Dict[str, OperationDescriptor] = {}

    # -- Registration --------------------------------------------------
    def operation(self, name: Optional[str] = None) -> Callable[[Callable], Callable]:
        """Decorator that registers an interface method under `name`."""

        def decorator(fn: Callable) -> Callable:
            wire_name = name or to_camel(fn.__name__)
            if wire_name in self._operations:
                raise ValueError(f"{self.name}: operation {wire_name!r} is already registered")
            descriptor = describe_operation(fn, wire_name)
            self._operations[wire_name] = descriptor
            logger.debug(
                "registered %s.%s(%s)",
                self.name,
                wire_name,
                ", ".join(descriptor.parameter_names or ("?",)),
            )
            return fn

        return decorator

    # -- Lookup --------------------------------------------------------
    def get(self, name: str) -> Optional[OperationDescriptor]:
        return self._operations.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._operations

    def __iter__(self) -> Iterator[OperationDescriptor]:
        return iter(self._operations.values())

    def __len__(self) -> int:
        return len(self._operations)

    @property
    def names(self) -> list:
        return list(self._operations.keys())

    # -- Parameter name resolution -------------------------------------
    def resolve_names(self, holder: Any, name: str) -> Optional[Tuple[str, ...]]:
        """
        Ordered parameter names for operation `name` as implemented by `holder`.

        Returns None (never raises) when the operation is unknown, was
        declared without usable metadata, or when the holder's concrete
        implementation does not take exactly the declared number of
        positional parameters.
        """
        descriptor = self._operations.get(name)
        if descriptor is None or descriptor.parameters is None:
            return None

        implementation = getattr(holder, descriptor.attribute, None)
        if implementation is None or getattr(implementation, "__isabstractmethod__", False):
            return None
        try:
            signature = inspect.signature(implementation)
        except (TypeError, ValueError):
            return None

        params = list(signature.parameters.values())
        if any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params):
            return None
        positional = [p for p in params if p.kind in _POSITIONAL]
        if len(positional) != len(descriptor.parameters):
            logger.warning(
                "%s.%s: %s implements %d parameter(s), interface declares %d",
                self.name,
                name,
                type(holder).__name__,
                len(positional),
                len(descriptor.parameters),
            )
            return None
        return descriptor.parameter_names
