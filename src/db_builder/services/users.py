"""Users resource service (``/data/users``)."""

from db_builder.client.options import QueryParams, RequestOptions
from db_builder.models.api import ItemResponse, ListResponse
from db_builder.models.user import SubscriptionType, User
from db_builder.services.base import ResourceService, with_filter


class UsersService(ResourceService[User]):
    resource = "users"
    model = User

    async def get_active_users(
        self,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> ListResponse[User]:
        return await self.list(with_filter(params, is_active=True), options)

    async def get_admins(
        self,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> ListResponse[User]:
        return await self.list(with_filter(params, is_admin=True), options)

    async def update_status(
        self,
        user_id: str | int,
        is_active: bool,
        options: RequestOptions | None = None,
    ) -> ItemResponse[User]:
        return await self.update(user_id, {"isActive": is_active}, options)

    async def update_subscription(
        self,
        user_id: str | int,
        subscription_type: SubscriptionType | str,
        max_projects: int | None = None,
        max_tables: int | None = None,
        subscription_expiry: str | None = None,
        options: RequestOptions | None = None,
    ) -> ItemResponse[User]:
        """Change a user's tier and quotas; unset quotas are left untouched."""
        payload: dict[str, object] = {
            "subscriptionType": SubscriptionType(subscription_type).value,
        }
        if max_projects is not None:
            payload["maxProjects"] = max_projects
        if max_tables is not None:
            payload["maxTables"] = max_tables
        if subscription_expiry is not None:
            payload["subscriptionExpiry"] = subscription_expiry
        return await self.update(user_id, payload, options)

    async def get_by_email(
        self,
        email: str,
        options: RequestOptions | None = None,
    ) -> User | None:
        return await self.find_one(options, email=email)
