"""Tenants resource service (``/data/tenants``)."""

from typing import Any

from db_builder.client.options import QueryParams, RequestOptions
from db_builder.models.api import ItemResponse, ListResponse
from db_builder.models.user import Tenant
from db_builder.services.base import ResourceService, with_filter


class TenantsService(ResourceService[Tenant]):
    resource = "tenants"
    model = Tenant

    async def get_active_tenants(
        self,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> ListResponse[Tenant]:
        return await self.list(with_filter(params, is_active=True), options)

    async def get_by_slug(
        self,
        slug: str,
        options: RequestOptions | None = None,
    ) -> Tenant | None:
        return await self.find_one(options, slug=slug)

    async def update_settings(
        self,
        tenant_id: str | int,
        settings: dict[str, Any],
        options: RequestOptions | None = None,
    ) -> ItemResponse[Tenant]:
        return await self.update(tenant_id, {"settings": settings}, options)

    async def update_status(
        self,
        tenant_id: str | int,
        is_active: bool,
        options: RequestOptions | None = None,
    ) -> ItemResponse[Tenant]:
        return await self.update(tenant_id, {"isActive": is_active}, options)
