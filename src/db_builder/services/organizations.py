"""Organizations resource service (``/data/organizations``)."""

from typing import Any

from db_builder.client.options import QueryParams, RequestOptions
from db_builder.models.api import ItemResponse, ListResponse
from db_builder.models.user import Organization
from db_builder.services.base import ResourceService, with_filter


class OrganizationsService(ResourceService[Organization]):
    resource = "organizations"
    model = Organization

    async def get_active_organizations(
        self,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> ListResponse[Organization]:
        return await self.list(with_filter(params, is_active=True), options)

    async def get_by_slug(
        self,
        slug: str,
        options: RequestOptions | None = None,
    ) -> Organization | None:
        return await self.find_one(options, slug=slug)

    async def get_user_organizations(
        self,
        user_id: str | int,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> ListResponse[Organization]:
        """Organizations where ``user_id`` is a member."""
        return await self.list(with_filter(params, member_user_id=user_id), options)

    async def update_settings(
        self,
        organization_id: str | int,
        settings: dict[str, Any],
        options: RequestOptions | None = None,
    ) -> ItemResponse[Organization]:
        return await self.update(organization_id, {"settings": settings}, options)

    async def update_limits(
        self,
        organization_id: str | int,
        limits: dict[str, Any],
        options: RequestOptions | None = None,
    ) -> ItemResponse[Organization]:
        return await self.update(organization_id, {"limits": limits}, options)

    async def update_plan(
        self,
        organization_id: str | int,
        plan: str,
        options: RequestOptions | None = None,
    ) -> ItemResponse[Organization]:
        return await self.update(organization_id, {"plan": plan}, options)

    async def get_statistics(self, organization_id: str | int) -> Any:
        return await self._client.get(
            f"/data/{self.resource}/{organization_id}/statistics"
        )

    async def get_members(
        self,
        organization_id: str | int,
        params: QueryParams | None = None,
    ) -> Any:
        return await self._client.get(
            f"/data/{self.resource}/{organization_id}/members",
            RequestOptions(params=params),
        )
