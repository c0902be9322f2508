"""Projects resource service (``/data/projects``)."""

from typing import Any

from db_builder.client.options import QueryParams, RequestOptions
from db_builder.models.api import ListResponse
from db_builder.models.project import Project
from db_builder.services.base import ResourceService, with_filter


class ProjectsService(ResourceService[Project]):
    resource = "projects"
    model = Project

    async def get_user_projects(
        self,
        user_id: str | int,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> ListResponse[Project]:
        """Projects owned by ``user_id``.

        The backend records ownership in ``created_by``, not ``user_id``.
        """
        return await self.list(with_filter(params, created_by=user_id), options)

    async def list_with_tables(
        self,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> ListResponse[Project]:
        """List projects with their tables embedded (``include=tables``)."""
        params = dict(params or {})
        params["include"] = ["tables", *(params.get("include") or [])]
        return await self.list(params, options)

    async def get_statistics(self, project_id: str | int) -> Any:
        return await self._client.get(f"/data/{self.resource}/{project_id}/statistics")
