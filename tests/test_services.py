"""Tests for the resource services over the Generic Handler.

The client is an ``AsyncMock``; tests check the resource name, the query
parameters handed to it and the typed envelopes that come back.
"""

from unittest.mock import AsyncMock

import pytest

from db_builder.errors import ApiError, NotFoundError
from db_builder.models.project import Project
from db_builder.models.user import SubscriptionType, User
from db_builder.services import (
    ApiKeysService,
    DebugService,
    OrganizationsService,
    ProjectsService,
    RowsService,
    TenantsService,
    UsersService,
    with_filter,
)


def _make_client(**returns) -> AsyncMock:
    """AsyncMock client whose resource methods return ``returns[name]``."""
    client = AsyncMock()
    for name, value in returns.items():
        getattr(client, name).return_value = value
    return client


PROJECT = {"id": "p1", "name": "Shop", "tables": [{"id": "t1", "name": "orders"}]}
USER = {"id": "u1", "email": "a@b.c", "subscriptionType": "premium", "maxProjects": 5}


class TestWithFilter:
    def test_merges_into_existing_filter(self) -> None:
        merged = with_filter({"limit": 5, "filter": {"a": 1}}, b=2)
        assert merged == {"limit": 5, "filter": {"a": 1, "b": 2}}

    def test_does_not_mutate_input(self) -> None:
        params = {"filter": {"a": 1}}
        with_filter(params, b=2)
        assert params == {"filter": {"a": 1}}

    def test_none_params(self) -> None:
        assert with_filter(None, x=1) == {"filter": {"x": 1}}


class TestResourceService:
    """CRUD on ProjectsService, typed through the envelopes."""

    async def test_list_returns_models(self) -> None:
        client = _make_client(list_resources={"success": True, "data": [PROJECT]})
        page = await ProjectsService(client).list({"limit": 10})

        client.list_resources.assert_awaited_once_with("projects", {"limit": 10}, None)
        assert isinstance(page.data[0], Project)
        assert page.data[0].tables[0].name == "orders"

    async def test_get(self) -> None:
        client = _make_client(get_resource={"success": True, "data": PROJECT})
        item = await ProjectsService(client).get("p1")
        assert item.data.id == "p1"
        client.get_resource.assert_awaited_once_with("projects", "p1", None)

    async def test_create_sends_camel_case(self) -> None:
        client = _make_client(create_resource={"success": True, "data": PROJECT})
        await ProjectsService(client).create(Project(id="p1", name="Shop", user_id="u1"))

        _, payload, _ = client.create_resource.await_args.args
        assert payload["userId"] == "u1"
        assert "user_id" not in payload

    async def test_update_with_dict(self) -> None:
        client = _make_client(update_resource={"success": True, "data": PROJECT})
        await ProjectsService(client).update("p1", {"name": "Shop"})
        client.update_resource.assert_awaited_once_with(
            "projects", "p1", {"name": "Shop"}, None
        )

    async def test_delete(self) -> None:
        client = _make_client(delete_resource=None)
        assert await ProjectsService(client).delete("p1") is None
        client.delete_resource.assert_awaited_once_with("projects", "p1", None)

    async def test_count(self) -> None:
        client = _make_client(count_resources={"success": True, "data": 7})
        assert await ProjectsService(client).count() == 7

    async def test_count_on_odd_body(self) -> None:
        client = _make_client(count_resources=None)
        assert await ProjectsService(client).count() == 0

    async def test_search_adds_param(self) -> None:
        client = _make_client(list_resources={"success": True, "data": []})
        await ProjectsService(client).search("shop", {"limit": 5})
        client.list_resources.assert_awaited_once_with(
            "projects", {"limit": 5, "search": "shop"}, None
        )

    async def test_find_one_empty(self) -> None:
        client = _make_client(list_resources={"success": True, "data": []})
        assert await ProjectsService(client).find_one(name="nope") is None
        client.list_resources.assert_awaited_once_with(
            "projects", {"limit": 1, "filter": {"name": "nope"}}, None
        )

    async def test_unexpected_shape_is_api_error(self) -> None:
        client = _make_client(get_resource={"success": True, "data": {"name": "no id"}})
        with pytest.raises(ApiError, match="Unexpected response shape for 'projects'"):
            await ProjectsService(client).get("p1")

    async def test_client_errors_propagate(self) -> None:
        client = AsyncMock()
        client.get_resource.side_effect = NotFoundError("Project")
        with pytest.raises(NotFoundError):
            await ProjectsService(client).get("missing")


class TestProjectsService:
    async def test_user_projects_filter_on_created_by(self) -> None:
        client = _make_client(list_resources={"success": True, "data": [PROJECT]})
        await ProjectsService(client).get_user_projects("u1")
        client.list_resources.assert_awaited_once_with(
            "projects", {"filter": {"created_by": "u1"}}, None
        )

    async def test_list_with_tables(self) -> None:
        client = _make_client(list_resources={"success": True, "data": []})
        await ProjectsService(client).list_with_tables({"include": ["fields"]})
        _, params, _ = client.list_resources.await_args.args
        assert params["include"] == ["tables", "fields"]

    async def test_statistics(self) -> None:
        client = _make_client(get={"success": True, "data": {"tables": 3}})
        await ProjectsService(client).get_statistics("p1")
        client.get.assert_awaited_once_with("/data/projects/p1/statistics")


class TestUsersService:
    async def test_user_model(self) -> None:
        client = _make_client(get_resource={"success": True, "data": USER})
        user = (await UsersService(client).get("u1")).data
        assert isinstance(user, User)
        assert user.subscription_type is SubscriptionType.PREMIUM
        assert user.max_projects == 5

    async def test_update_subscription_partial(self) -> None:
        client = _make_client(update_resource={"success": True, "data": USER})
        await UsersService(client).update_subscription("u1", "basic", max_tables=10)
        client.update_resource.assert_awaited_once_with(
            "users", "u1", {"subscriptionType": "basic", "maxTables": 10}, None
        )

    async def test_update_subscription_rejects_unknown_tier(self) -> None:
        with pytest.raises(ValueError):
            await UsersService(AsyncMock()).update_subscription("u1", "gold")

    async def test_active_users_filter(self) -> None:
        client = _make_client(list_resources={"success": True, "data": []})
        await UsersService(client).get_active_users()
        client.list_resources.assert_awaited_once_with(
            "users", {"filter": {"is_active": True}}, None
        )

    async def test_get_by_email(self) -> None:
        client = _make_client(list_resources={"success": True, "data": [USER]})
        user = await UsersService(client).get_by_email("a@b.c")
        assert user.id == "u1"


class TestTenantAndOrganizationServices:
    async def test_tenant_by_slug(self) -> None:
        client = _make_client(
            list_resources={"success": True, "data": [{"id": "t1", "name": "Acme", "slug": "acme"}]}
        )
        tenant = await TenantsService(client).get_by_slug("acme")
        assert tenant.name == "Acme"

    async def test_organization_members_path(self) -> None:
        client = _make_client(get={"success": True, "data": []})
        await OrganizationsService(client).get_members("o1", {"limit": 5})
        endpoint, options = client.get.await_args.args
        assert endpoint == "/data/organizations/o1/members"
        assert options.params == {"limit": 5}

    async def test_update_plan(self) -> None:
        client = _make_client(
            update_resource={"success": True, "data": {"id": "o1", "name": "Org"}}
        )
        await OrganizationsService(client).update_plan("o1", "enterprise")
        client.update_resource.assert_awaited_once_with(
            "organizations", "o1", {"plan": "enterprise"}, None
        )


class TestRowsService:
    async def test_table_name_is_resource(self) -> None:
        client = _make_client(list_resources={"success": True, "data": [{"id": 1, "total": 9}]})
        rows = await RowsService(client, "orders").list()
        client.list_resources.assert_awaited_once_with("orders", None, None)
        assert rows.data == [{"id": 1, "total": 9}]

    def test_requires_table_name(self) -> None:
        with pytest.raises(ValueError):
            RowsService(AsyncMock(), "")


class TestAdminServices:
    async def test_api_key_endpoints(self) -> None:
        client = AsyncMock()
        service = ApiKeysService(client)
        await service.get_my_key()
        await service.regenerate()
        await service.regenerate_master_admin_password()

        client.get.assert_awaited_once_with("/api-keys/my-key")
        assert [c.args[0] for c in client.post.await_args_list] == [
            "/api-keys/regenerate",
            "/api-keys/master-admin/regenerate-password",
        ]

    async def test_debug_table_data(self) -> None:
        client = AsyncMock()
        await DebugService(client).table_data("public", "users", limit=10)
        endpoint, options = client.get.await_args.args
        assert endpoint == "/debug/table/public/users/data"
        assert options.params == {"limit": 10, "offset": 0}
