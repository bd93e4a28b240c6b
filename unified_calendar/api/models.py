"""
Pydantic response models for the Unified Calendar API.

Request bodies reuse EventCreate and EventUpdate from the schemas module.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from unified_calendar.schemas import Event


class EventListResponse(BaseModel):
    """Response for listing events."""

    events: list[Event] = Field(..., description="Merged, filtered events")
    total: int = Field(..., description="Total number of matching events")
    degraded: bool = Field(
        default=False,
        description="True when one source failed and the list is partial",
    )
    warnings: list[str] = Field(default_factory=list, description="Why the list is partial")


class DeleteEventResponse(BaseModel):
    """Response for deleting an event."""

    success: bool = Field(..., description="Whether deletion was successful")
    event_id: str = Field(..., description="ID of deleted event")
    message: str = Field(..., description="Status message")


class ErrorResponse(BaseModel):
    """Error information for failed requests."""

    error_type: Literal[
        "validation_error",
        "recurrence_error",
        "authorization_error",
        "not_found",
        "store_unavailable",
        "internal_error",
        "http_error",
    ] = Field(..., description="Type of error")
    message: str = Field(..., description="Human-readable error message")
    retryable: bool = Field(default=False, description="Whether request can be retried")


class HealthResponse(BaseModel):
    """Health check response."""

    status: Literal["healthy", "degraded"] = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    database_connected: bool = Field(..., description="Database connection status")
    static_calendar_loaded: bool = Field(..., description="Embedded calendar loaded")
    static_dataset_version: Optional[str] = Field(None, description="Embedded calendar version")
