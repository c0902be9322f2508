"""Per-resource service wrappers over the Generic Handler.

Usage:
    from db_builder.services import ProjectsService, UsersService
    from db_builder.services import RowsService, DebugService
"""

from db_builder.services.admin import ApiKeysService, DebugService
from db_builder.services.base import ResourceService, parse_envelope, with_filter
from db_builder.services.organizations import OrganizationsService
from db_builder.services.projects import ProjectsService
from db_builder.services.rows import RowsService
from db_builder.services.tenants import TenantsService
from db_builder.services.users import UsersService

__all__ = [
    "ResourceService",
    "parse_envelope",
    "with_filter",
    "ProjectsService",
    "UsersService",
    "TenantsService",
    "OrganizationsService",
    "RowsService",
    "ApiKeysService",
    "DebugService",
]
