"""Response envelopes of the backend's Generic Handler.

Every endpoint answers ``{success, data, ...}``.  The envelopes are generic
over the item type so services can return typed data:

    >>> resp = ListResponse[dict].model_validate({"success": True, "data": [{"id": 1}]})
    >>> resp.data[0]["id"]
    1
"""

from typing import Any, Generic, TypeVar

from pydantic import Field

from db_builder.models.base import WireModel

T = TypeVar("T")


class ApiResponse(WireModel, Generic[T]):
    """Standard envelope; ``data`` may be absent on failure."""

    success: bool
    data: T | None = None
    error: str | None = None
    message: str | None = None


class ResourceMetadata(WireModel):
    resource: str = ""
    count: int = 0
    fields: list[str] | None = None
    timestamp: str = ""


class ListResponse(WireModel, Generic[T]):
    success: bool
    data: list[T] = Field(default_factory=list)
    meta: ResourceMetadata | None = None
    error: str | None = None


class ItemResponse(WireModel, Generic[T]):
    success: bool
    data: T
    error: str | None = None


class Pagination(WireModel):
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedResponse(WireModel, Generic[T]):
    success: bool
    data: list[T] = Field(default_factory=list)
    pagination: Pagination
    error: str | None = None
    message: str | None = None


class ErrorResponse(WireModel):
    success: bool = False
    error: str
    message: str | None = None
    status_code: int | None = None
    details: dict[str, Any] | None = None
