"""
NoteGate — Pydantic Response Schemas
======================================

What:  Pydantic models for the gateway's own responses (errors, health,
       operation catalogues). Operation results are domain types from
       `notegate.schemas.types` and are not wrapped.
Who:   Used by route handlers as response models and in OpenAPI docs.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "method_not_found",
            "message": "Cannot find methodName=[createTagz] on [LocalNoteStore].",
            "details": {"method": "createTagz", "target": "LocalNoteStore"},
            "request_id": "1f0c2a9b"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class OperationInfo(BaseModel):
    """One entry of a store's operation catalogue."""
    name: str = Field(description="Wire name used in POST /<store>/<name>")
    parameters: Optional[List[str]] = Field(
        default=None,
        description="Ordered JSON field names; null when the operation cannot be dispatched",
    )
    returns: str = Field(description="Name of the returned type")


class StoreCatalogResponse(BaseModel):
    """Returned by GET /<store>."""
    store: str = Field(description="Store variant name")
    operations: List[OperationInfo] = Field(description="Operations in declaration order")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    stores: List[str] = Field(description="Mounted store variants")
    uptime_seconds: float = Field(description="Seconds since service started")
