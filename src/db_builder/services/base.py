"""Base class for Generic Handler resource services.

A service binds a resource name and a pydantic model to a
``ResourceClient`` and returns typed envelopes.  Errors raised by the
client propagate unchanged.

Usage:
    class ProjectsService(ResourceService[Project]):
        resource = "projects"
        model = Project

    projects = ProjectsService(client)
    page = await projects.list({"limit": 20})
    first = page.data[0]
"""

from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from db_builder.client.base import ResourceClient
from db_builder.client.options import QueryParams, RequestOptions
from db_builder.errors import ApiError
from db_builder.models.api import ItemResponse, ListResponse

M = TypeVar("M")
E = TypeVar("E", bound=BaseModel)


def with_filter(params: QueryParams | None, **filters: Any) -> QueryParams:
    """Copy ``params`` with ``filters`` merged into its ``filter`` dict."""
    merged: QueryParams = dict(params or {})
    merged["filter"] = {**(merged.get("filter") or {}), **filters}
    return merged


def parse_envelope(envelope: type[E], raw: Any, resource: str) -> E:
    """Validate a decoded response body against an envelope model."""
    try:
        return envelope.model_validate(raw)
    except PydanticValidationError as e:
        raise ApiError(
            f"Unexpected response shape for '{resource}': {e.error_count()} errors",
            response=raw,
        ) from e


class ResourceService(Generic[M]):
    """CRUD + count + search over one Generic Handler resource."""

    resource: ClassVar[str] = ""
    model: ClassVar[type] = dict

    def __init__(self, client: ResourceClient) -> None:
        self._client = client

    @staticmethod
    def _payload(data: Any) -> dict[str, Any]:
        if isinstance(data, BaseModel):
            return data.model_dump(by_alias=True, exclude_none=True, mode="json")
        return dict(data)

    async def list(
        self,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> ListResponse[M]:
        raw = await self._client.list_resources(self.resource, params, options)
        return parse_envelope(ListResponse[self.model], raw, self.resource)

    async def get(
        self,
        resource_id: str | int,
        options: RequestOptions | None = None,
    ) -> ItemResponse[M]:
        raw = await self._client.get_resource(self.resource, resource_id, options)
        return parse_envelope(ItemResponse[self.model], raw, self.resource)

    async def create(
        self,
        data: Any,
        options: RequestOptions | None = None,
    ) -> ItemResponse[M]:
        raw = await self._client.create_resource(
            self.resource, self._payload(data), options
        )
        return parse_envelope(ItemResponse[self.model], raw, self.resource)

    async def update(
        self,
        resource_id: str | int,
        data: Any,
        options: RequestOptions | None = None,
    ) -> ItemResponse[M]:
        raw = await self._client.update_resource(
            self.resource, resource_id, self._payload(data), options
        )
        return parse_envelope(ItemResponse[self.model], raw, self.resource)

    async def delete(
        self,
        resource_id: str | int,
        options: RequestOptions | None = None,
    ) -> None:
        await self._client.delete_resource(self.resource, resource_id, options)

    async def count(
        self,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> int:
        raw = await self._client.count_resources(self.resource, params, options)
        if not isinstance(raw, dict):
            return 0
        return int(raw.get("data") or 0)

    async def search(
        self,
        query: str,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> ListResponse[M]:
        return await self.list({**(params or {}), "search": query}, options)

    async def find_one(
        self,
        options: RequestOptions | None = None,
        **filters: Any,
    ) -> M | None:
        """First item matching ``filters``, or ``None``."""
        response = await self.list(with_filter({"limit": 1}, **filters), options)
        return response.data[0] if response.data else None
