"""
NoteGate — Dispatch Gateway
=============================

What:  Resolves a wire method name against an operation registry, decodes
       each named JSON field into the declared parameter type, invokes the
       target's implementation and returns the result.
How:   1. Look up the operation by name (name only, no overloads).
       2. Ask the registry for the ordered parameter names.
       3. Decode every present field with its parameter's TypeAdapter;
          absent and null fields become None without validation.
       4. Call the bound method positionally; await the result if needed.
Who:   Called by the store routes with the handle from the store accessor.

Errors raised here:
    MethodNotFoundError            → unknown name, or target has no callable for it
    ParameterNamesUnavailableError → registry cannot supply names for the target
    ParameterDeserializationError  → a field's JSON shape does not fit its type

Errors raised by the operation itself are not caught; they reach the
exception handlers in main.py unchanged.
"""

import inspect
import json
import logging
from typing import Any, List, Mapping

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError as PydanticValidationError

from notegate.exceptions import (
    MethodNotFoundError,
    ParameterDeserializationError,
    ParameterNamesUnavailableError,
)
from notegate.services.registry import OperationDescriptor, OperationRegistry

logger = logging.getLogger(__name__)


class DispatchGateway:
    """
    Generic name → method invoker over one operation registry.

    Holds no per-request state; one instance per registry is shared by all
    requests.
    """

    def __init__(self, registry: OperationRegistry) -> None:
        self.registry = registry

    def find_operation(self, target: Any, method_name: str) -> OperationDescriptor:
        """Return the descriptor for `method_name`, or raise MethodNotFoundError."""
        target_type = type(target).__name__
        descriptor = self.registry.get(method_name)
        if descriptor is None or not callable(getattr(target, descriptor.attribute, None)):
            logger.warning("no method %r on %s", method_name, target_type)
            raise MethodNotFoundError(method_name, target_type)
        return descriptor

    def resolve_arguments(
        self,
        target: Any,
        descriptor: OperationDescriptor,
        payload: Mapping[str, Any],
    ) -> List[Any]:
        """Decode `payload` into the positional argument list for `descriptor`."""
        names = self.registry.resolve_names(target, descriptor.name)
        if names is None:
            logger.warning(
                "parameter names unavailable for %s on %s",
                descriptor.name,
                type(target).__name__,
            )
            raise ParameterNamesUnavailableError(descriptor.name)

        arguments: List[Any] = []
        for name, spec in zip(names, descriptor.parameters):
            # An explicit null and an omitted field both reach the operation as None
            raw = payload.get(name)
            if raw is None:
                arguments.append(None)
                continue
            try:
                arguments.append(spec.adapter.validate_python(raw))
            except PydanticValidationError as exc:
                raise ParameterDeserializationError(
                    parameter=name,
                    fragment=json.dumps(raw, default=str),
                    errors=exc.errors(include_url=False, include_context=False, include_input=False),
                ) from exc
        return arguments

    async def invoke(self, target: Any, method_name: str, payload: Mapping[str, Any]) -> Any:
        """Dispatch `method_name` on `target` with arguments decoded from `payload`."""
        descriptor = self.find_operation(target, method_name)
        arguments = self.resolve_arguments(target, descriptor, payload)

        logger.debug(
            "dispatch %s.%s on %s",
            self.registry.name,
            method_name,
            type(target).__name__,
        )
        result = getattr(target, descriptor.attribute)(*arguments)
        if inspect.isawaitable(result):
            result = await result
        return result


def encode_result(result: Any) -> Any:
    """JSON-compatible form of an operation result (wire names, unset fields dropped)."""
    return jsonable_encoder(result, by_alias=True, exclude_none=True)
