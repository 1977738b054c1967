"""
DevCamper Backend — Shared Response Schemas
=============================================

What:  Envelopes shared by every resource: paginated lists, deletes,
       errors and the health check.

List wire shape:
    {
        "success": true,
        "count": 2,
        "pagination": {"next": {"page": 3, "limit": 2}, "prev": {"page": 1, "limit": 2}},
        "data": [{...}, {...}]
    }

`data` items are plain dicts because ?select changes their shape per request.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from devcamper.services.query_builder import ListResult


class PageRefModel(BaseModel):
    page: int = Field(description="Page number (1-based)")
    limit: int = Field(description="Page size")


class ListResponse(BaseModel):
    """Paginated collection response."""
    success: bool = Field(default=True)
    count: int = Field(description="Number of records in this page")
    pagination: Dict[str, PageRefModel] = Field(
        default_factory=dict,
        description="'next' and/or 'prev' page descriptors; omitted when absent",
    )
    data: List[Dict[str, Any]] = Field(description="Records, projected by ?select")

    @classmethod
    def from_result(cls, result: ListResult) -> "ListResponse":
        return cls(
            count=result.count,
            pagination=result.pagination.to_dict(),
            data=result.records,
        )


class DeleteResponse(BaseModel):
    success: bool = Field(default=True)
    data: Dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseModel):
    """
    Error envelope returned by every exception handler.

    Example:
        {
            "success": false,
            "error": "not_found",
            "message": "Bootcamp not found with id of 5d713995b721c3bb38c1f5d0",
            "request_id": "a1b2c3d4"
        }
    """
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: Any = Field(description="Human-readable description (list for body validation)")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    geocoder: str = Field(description="Geocoder status: available, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
