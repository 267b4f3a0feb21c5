"""
NoteGate — Custom Exception Hierarchy
=======================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Gateway errors are raised by the dispatch gateway; store errors are
       raised by the store operations themselves and pass through the
       gateway untouched.
When:  During request processing when recoverable errors occur.

Exception Hierarchy:
    NoteGateError (base)
    ├── ValidationError                 → 400 Bad Request (request body unusable)
    ├── MethodNotFoundError             → 400 Bad Request (unknown operation)
    ├── ParameterDeserializationError   → 400 Bad Request (JSON field has wrong shape)
    ├── ParameterNamesUnavailableError  → 500 Internal Server Error (operation set misconfigured)
    ├── StoreError
    │   ├── StoreUserError              → 400 Bad Request (store rejected the data)
    │   ├── StoreNotFoundError          → 404 Not Found
    │   └── StoreSystemError            → 503 Service Unavailable
    ├── DatabaseError                   → 500 Internal Server Error
    └── RateLimitExceededError          → 429 Too Many Requests
"""

import enum
from typing import Any, Dict, Optional


class NoteGateError(Exception):
    """
    Base exception for all NoteGate application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info returned as `details` for client errors
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteGateError):
    """
    Raised when the request itself cannot be used.

    When:    Body is not valid JSON or is not a JSON object.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


# ══════════════════════════════════════════════════════════════════════════
# Dispatch Gateway Errors
# ══════════════════════════════════════════════════════════════════════════


class MethodNotFoundError(NoteGateError):
    """
    Raised when the requested operation does not exist on the target.

    HTTP:    400 Bad Request
    Carries: the method name and the target's type name for diagnostics.
    """

    def __init__(self, method_name: str, target_type: str):
        message = f"Cannot find methodName=[{method_name}] on [{target_type}]."
        super().__init__(
            message=message,
            context={"method": method_name, "target": target_type},
        )
        self.method_name = method_name
        self.target_type = target_type


class ParameterNamesUnavailableError(NoteGateError):
    """
    Raised when an operation's parameter names cannot be resolved.

    HTTP:    500 Internal Server Error. The deployed operation set is
             incomplete or declared without usable signatures; the client
             cannot fix this.
    """

    def __init__(self, method_name: str):
        message = f"Cannot find parameter names for method=[{method_name}]."
        super().__init__(message=message, context={"method": method_name})
        self.method_name = method_name


class ParameterDeserializationError(NoteGateError):
    """
    Raised when a JSON field cannot be decoded into its parameter's type.

    HTTP:    400 Bad Request
    Carries: the parameter name, a snippet of the offending JSON and the
             validation errors reported by pydantic.
    """

    SNIPPET_LIMIT = 200

    def __init__(
        self,
        parameter: str,
        fragment: str,
        errors: Optional[list] = None,
    ):
        if len(fragment) > self.SNIPPET_LIMIT:
            fragment = fragment[: self.SNIPPET_LIMIT] + "..."
        message = (
            f"Cannot parse part of the json for parameter=[{parameter}]. json=[{fragment}]"
        )
        ctx: Dict[str, Any] = {"parameter": parameter, "json": fragment}
        if errors:
            ctx["errors"] = errors
        super().__init__(message=message, context=ctx)
        self.parameter = parameter
        self.fragment = fragment


# ══════════════════════════════════════════════════════════════════════════
# Store Errors (raised by operations, never wrapped by the gateway)
# ══════════════════════════════════════════════════════════════════════════


class StoreErrorCode(str, enum.Enum):
    """Error codes reported by store operations."""

    UNKNOWN = "UNKNOWN"
    BAD_DATA_FORMAT = "BAD_DATA_FORMAT"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATA_REQUIRED = "DATA_REQUIRED"
    LIMIT_REACHED = "LIMIT_REACHED"
    DATA_CONFLICT = "DATA_CONFLICT"
    INVALID_AUTH = "INVALID_AUTH"


class StoreError(NoteGateError):
    """Base for errors raised by store operations."""


class StoreUserError(StoreError):
    """
    The store rejected the caller's data.

    HTTP:    400 Bad Request
    Example: StoreUserError(StoreErrorCode.DATA_CONFLICT, "Tag.name")
    """

    def __init__(self, error_code: StoreErrorCode, parameter: Optional[str] = None):
        message = f"{error_code.value}"
        if parameter:
            message = f"{error_code.value}: {parameter}"
        ctx: Dict[str, Any] = {"error_code": error_code.value}
        if parameter:
            ctx["parameter"] = parameter
        super().__init__(message=message, context=ctx)
        self.error_code = error_code
        self.parameter = parameter


class StoreNotFoundError(StoreError):
    """
    An object referenced by the caller does not exist.

    HTTP:    404 Not Found
    Example: StoreNotFoundError("Note.guid", "4a1b...")
    """

    def __init__(self, identifier: str, key: Optional[str] = None):
        message = f"{identifier} not found"
        if key:
            message = f"{identifier} '{key}' not found"
        ctx: Dict[str, Any] = {"identifier": identifier}
        if key:
            ctx["key"] = key
        super().__init__(message=message, context=ctx)
        self.identifier = identifier
        self.key = key


class StoreSystemError(StoreError):
    """
    The store is unable to serve the request right now.

    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        error_code: StoreErrorCode = StoreErrorCode.INTERNAL_ERROR,
        message: str = "The note store is temporarily unavailable",
        rate_limit_duration: Optional[int] = None,
    ):
        ctx: Dict[str, Any] = {"error_code": error_code.value}
        if rate_limit_duration is not None:
            ctx["rate_limit_duration"] = rate_limit_duration
        super().__init__(message=message, context=ctx)
        self.error_code = error_code
        self.rate_limit_duration = rate_limit_duration


# ══════════════════════════════════════════════════════════════════════════
# Infrastructure Errors
# ══════════════════════════════════════════════════════════════════════════


class DatabaseError(NoteGateError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    Security Note:
        The message returned to the client is always generic.
        Detailed error info (SQL, constraint names) is logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(NoteGateError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
