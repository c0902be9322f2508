"""Generic Handler client protocol.

Defines the ``ResourceClient`` Protocol that resource services depend on.
The backend exposes every resource under a uniform convention:

- ``GET    /data/:resource``         list (filter, sort, paginate)
- ``GET    /data/:resource/count``   count
- ``GET    /data/:resource/:id``     get one
- ``POST   /data/:resource``         create
- ``PUT    /data/:resource/:id``     update
- ``DELETE /data/:resource/:id``     delete

All methods are ``async def`` and return the decoded JSON envelope
(``{"success": ..., "data": ..., "meta": ...}``).

Usage:
    from db_builder.client.base import ResourceClient

    async def count_projects(client: ResourceClient) -> int:
        response = await client.count_resources("projects")
        return response.get("data") or 0
"""

from typing import Any, Protocol

from db_builder.client.options import QueryParams, RequestOptions


class ResourceClient(Protocol):
    """Client interface for the backend's Generic Handler.

    ``ApiClient`` implements it over HTTP; tests substitute ``AsyncMock``
    objects with the same shape.
    """

    async def list_resources(
        self,
        resource: str,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """List resources.

        Args:
            resource: Resource name (e.g. ``"projects"``).
            params: Query parameters (``limit``, ``offset``, ``page``,
                ``pageSize``, ``sort``, ``search``, ``filter``, ``include``).
            options: Per-request options.

        Returns:
            Envelope ``{"success": bool, "data": [...], "meta": {...}}``.

        Example:
            resp = await client.list_resources(
                "users", params={"filter": {"is_active": True}, "limit": 10}
            )
        """
        ...

    async def get_resource(
        self,
        resource: str,
        resource_id: str | int,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Get a single resource by id.

        Raises:
            NotFoundError: If the id does not exist.
        """
        ...

    async def create_resource(
        self,
        resource: str,
        data: dict[str, Any],
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Create a resource and return the envelope with the created item.

        Raises:
            ValidationError: If the backend rejects the payload.
        """
        ...

    async def update_resource(
        self,
        resource: str,
        resource_id: str | int,
        data: dict[str, Any],
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Update a resource and return the envelope with the updated item."""
        ...

    async def delete_resource(
        self,
        resource: str,
        resource_id: str | int,
        options: RequestOptions | None = None,
    ) -> dict[str, Any] | None:
        """Delete a resource."""
        ...

    async def count_resources(
        self,
        resource: str,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        """Count resources matching ``params``; ``data`` holds the number."""
        ...

    async def get(
        self,
        endpoint: str,
        options: RequestOptions | None = None,
    ) -> Any:
        """Plain GET for endpoints outside the Generic Handler convention."""
        ...
