"""Transport package.

Provides the ``ResourceClient`` Protocol, the httpx-based ``ApiClient``
implementation, request options and session token stores.

Usage:
    from db_builder.client import ApiClient, RequestOptions
    from db_builder.client import FileTokenStore, MemoryTokenStore
"""

from db_builder.client.base import ResourceClient
from db_builder.client.http import (
    DEFAULT_API_URL,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    ApiClient,
    encode_query,
)
from db_builder.client.options import QueryParams, RequestOptions
from db_builder.client.tokens import (
    AUTH_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_KEY,
    FileTokenStore,
    MemoryTokenStore,
    TokenStore,
)

__all__ = [
    "ResourceClient",
    "ApiClient",
    "encode_query",
    "DEFAULT_API_URL",
    "DEFAULT_RETRY_COUNT",
    "DEFAULT_RETRY_DELAY",
    "DEFAULT_TIMEOUT",
    "QueryParams",
    "RequestOptions",
    "TokenStore",
    "MemoryTokenStore",
    "FileTokenStore",
    "AUTH_TOKEN_KEY",
    "REFRESH_TOKEN_KEY",
    "USER_KEY",
]
