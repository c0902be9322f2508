"""db-builder: Async client toolkit for the db-builder backend.

Provides an httpx-based API client with token refresh and retries, typed
resource services, a session store with a pure reducer, field editing,
plan pricing, API key utilities, schema comparison and project
export/import, plus a rich-based CLI.

Usage:
    from db_builder import ApiClient, ProjectsService, get_client
    from db_builder import DatabaseSession, Store, Action, ActionType
    from db_builder import SearchState, FilterOption, FilterOperator
    from db_builder import calculate_price_with_campaign, mask_api_key
"""

__version__ = "0.1.0"

# Client
from db_builder.client.http import ApiClient
from db_builder.client.options import RequestOptions
from db_builder.client.tokens import FileTokenStore, MemoryTokenStore

# Errors
from db_builder.errors import (
    ApiError,
    AuthenticationError,
    AuthorizationError,
    DbBuilderError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)

# Config / factory
from db_builder.config.loader import load_client_config
from db_builder.config.models import ClientConfig, ClientProfile
from db_builder.factory import ProfileNotFoundError, get_client

# Services
from db_builder.services import (
    ApiKeysService,
    DebugService,
    OrganizationsService,
    ProjectsService,
    RowsService,
    TenantsService,
    UsersService,
)

# State
from db_builder.store import (
    Action,
    ActionType,
    DatabaseSession,
    DatabaseState,
    Store,
    reduce,
)

# Domain helpers
from db_builder.apikeys import mask_api_key, validate_api_key
from db_builder.pricing import calculate_price_with_campaign, get_campaign_for_plan
from db_builder.query import FilterOperator, FilterOption, SearchState, SortDirection

# Schema (comparator)
from db_builder.schema.comparator import validate_schema

__all__ = [
    # Client
    "ApiClient",
    "RequestOptions",
    "FileTokenStore",
    "MemoryTokenStore",
    # Errors
    "DbBuilderError",
    "ApiError",
    "NetworkError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ValidationError",
    "ServerError",
    # Config / factory
    "load_client_config",
    "ClientConfig",
    "ClientProfile",
    "get_client",
    "ProfileNotFoundError",
    # Services
    "ProjectsService",
    "UsersService",
    "TenantsService",
    "OrganizationsService",
    "RowsService",
    "ApiKeysService",
    "DebugService",
    # State
    "DatabaseState",
    "ActionType",
    "Action",
    "reduce",
    "Store",
    "DatabaseSession",
    # Domain helpers
    "mask_api_key",
    "validate_api_key",
    "calculate_price_with_campaign",
    "get_campaign_for_plan",
    "SearchState",
    "FilterOption",
    "FilterOperator",
    "SortDirection",
    # Schema
    "validate_schema",
]
