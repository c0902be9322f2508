"""Admin-only endpoints outside the Generic Handler.

``ApiKeysService`` covers the per-user key endpoints (``/api-keys/*``) and
the master admin credential (``/api-keys/master-admin/*``).
``DebugService`` covers the read-only inspection endpoints (``/debug/*``)
used by the schema and compliance reports.
"""

from typing import Any

from db_builder.client.http import ApiClient
from db_builder.client.options import RequestOptions


class ApiKeysService:
    """User API key and master admin credential management."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def get_my_key(self) -> Any:
        return await self._client.get("/api-keys/my-key")

    async def generate(self) -> Any:
        return await self._client.post("/api-keys/generate")

    async def regenerate(self) -> Any:
        return await self._client.post("/api-keys/regenerate")

    async def delete(self) -> Any:
        return await self._client.delete("/api-keys/delete")

    async def get_master_admin(self) -> Any:
        return await self._client.get("/api-keys/master-admin")

    async def generate_master_admin(self) -> Any:
        return await self._client.post("/api-keys/master-admin/generate")

    async def regenerate_master_admin(self) -> Any:
        return await self._client.post("/api-keys/master-admin/regenerate")

    async def regenerate_master_admin_password(self) -> Any:
        return await self._client.post("/api-keys/master-admin/regenerate-password")


class DebugService:
    """Backend schema inspection."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    async def tables_detailed(self) -> Any:
        """All backend tables with their columns (``/debug/tables-detailed``)."""
        return await self._client.get("/debug/tables-detailed")

    async def table_data(
        self,
        schema: str,
        table: str,
        limit: int = 100,
        offset: int = 0,
    ) -> Any:
        """Raw rows of one backend table."""
        return await self._client.get(
            f"/debug/table/{schema}/{table}/data",
            RequestOptions(params={"limit": limit, "offset": offset}),
        )
