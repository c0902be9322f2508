"""Async HTTP client for the db-builder backend.

Provides ``ApiClient``, the single point of outbound HTTP calls, built on
``httpx.AsyncClient``.  It implements the ``ResourceClient`` protocol and
adds:

- URL building with query-string encoding (lists joined with commas,
  dicts JSON-encoded, ``None`` values dropped)
- Bearer token auth from a ``TokenStore``
- Single-flight token refresh on 401, then one retry of the request
- Status code mapping to the typed errors in ``db_builder.errors``
- Retry with exponential backoff (``retry_delay * 2 ** attempt``) for
  server, network and other non-client failures

Usage:
    from db_builder.client.http import ApiClient

    async with ApiClient("https://api.example.com/api/v1") as client:
        result = await client.login("me@example.com", "secret")
        projects = await client.list_resources("projects", {"limit": 10})
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar
from urllib.parse import urlencode

import httpx

from db_builder.client.options import QueryParams, RequestOptions
from db_builder.client.tokens import (
    AUTH_TOKEN_KEY,
    REFRESH_TOKEN_KEY,
    USER_KEY,
    MemoryTokenStore,
    TokenStore,
)
from db_builder.errors import (
    NON_RETRYABLE_ERRORS,
    ApiError,
    AuthenticationError,
    AuthorizationError,
    DbBuilderError,
    NetworkError,
    NotFoundError,
    ServerError,
    ValidationError,
)
from db_builder.models.api import ApiResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_API_URL = "https://hzmdatabasebackend-production.up.railway.app/api/v1"
DEFAULT_RETRY_COUNT = 3
DEFAULT_RETRY_DELAY = 1.0  # seconds
DEFAULT_TIMEOUT = 30.0  # seconds, per attempt

_SERVER_ERROR_STATUSES = frozenset({500, 502, 503, 504})


def _param_value(value: Any) -> str:
    """Encode a single query parameter value the way the backend expects."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_param_value(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def encode_query(params: QueryParams | None) -> str:
    """Encode query parameters, skipping ``None`` values.

    Example:
        >>> encode_query({"a": [1, 2], "d": None})
        'a=1%2C2'
    """
    if not params:
        return ""
    filtered = {
        key: _param_value(value)
        for key, value in params.items()
        if value is not None
    }
    return urlencode(filtered)


class ApiClient:
    """Async HTTP implementation of the ``ResourceClient`` protocol.

    Args:
        base_url: API root including the version prefix, without a trailing
            slash (e.g. ``https://host/api/v1``).
        token_store: Where session tokens live.  Defaults to an in-memory
            store.  Tokens present in the store are picked up at construction.
        retry_count: Default number of retries after the first attempt.
        retry_delay: Default base delay in seconds for exponential backoff.
        timeout: Default per-attempt timeout in seconds.
        http_client: Optional pre-built ``httpx.AsyncClient`` (e.g. with a
            ``MockTransport`` in tests).  When given, the caller owns it and
            ``close()`` leaves it open.

    Example:
        client = ApiClient(token_store=FileTokenStore(path))
        if client.is_authenticated():
            me = await client.get_current_user()
        await client.close()
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        token_store: TokenStore | None = None,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self.timeout = timeout

        self._store: TokenStore = token_store if token_store is not None else MemoryTokenStore()
        self._token: str | None = self._store.get(AUTH_TOKEN_KEY)
        self._refresh_token: str | None = self._store.get(REFRESH_TOKEN_KEY)
        self._refresh_task: asyncio.Task[str] | None = None

        self._owns_http = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    def set_tokens(self, token: str, refresh_token: str | None = None) -> None:
        """Store the access token and, when given, a new refresh token."""
        self._token = token
        self._store.set(AUTH_TOKEN_KEY, token)

        if refresh_token:
            self._refresh_token = refresh_token
            self._store.set(REFRESH_TOKEN_KEY, refresh_token)

    def clear_tokens(self) -> None:
        """Forget both tokens and the cached user."""
        self._token = None
        self._refresh_token = None
        self._store.remove(AUTH_TOKEN_KEY)
        self._store.remove(REFRESH_TOKEN_KEY)
        self._store.remove(USER_KEY)

    def is_authenticated(self) -> bool:
        return bool(self._token)

    def stored_user(self) -> dict[str, Any] | None:
        """User object saved by the last successful login/register."""
        raw = self._store.get(USER_KEY)
        if not raw:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def build_url(self, endpoint: str, params: QueryParams | None = None) -> str:
        """Join ``endpoint`` to the base URL and append encoded ``params``."""
        url = f"{self.base_url}{endpoint}"
        query = encode_query(params)
        if query:
            url = f"{url}?{query}"
        return url

    def _headers(self, custom: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **(custom or {})}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    @staticmethod
    def _error_body(response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Raise the typed error matching ``response.status_code``."""
        body = self._error_body(response)
        message = body.get("error") or body.get("message") or response.reason_phrase
        status = response.status_code

        if status == 400:
            fields = body.get("fields")
            raise ValidationError(message, fields if isinstance(fields, dict) else None)
        if status == 401:
            raise AuthenticationError(message)
        if status == 403:
            raise AuthorizationError(message)
        if status == 404:
            raise NotFoundError(body.get("resource"))
        if status in _SERVER_ERROR_STATUSES:
            raise ServerError(message, status_code=status)
        raise ApiError(message, status_code=status, response=body)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(
                "Invalid JSON in response",
                status_code=response.status_code,
            ) from e

    async def _send(
        self,
        method: str,
        url: str,
        data: Any,
        options: RequestOptions,
        refreshed: bool = False,
    ) -> Any:
        """One attempt, including at most one refresh-and-resend on 401."""
        timeout = options.timeout if options.timeout is not None else self.timeout

        sent_token = self._token
        try:
            response = await self._http.request(
                method,
                url,
                headers=self._headers(options.headers),
                json=data if data is not None else None,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise NetworkError("Request timeout") from e
        except httpx.TransportError as e:
            raise NetworkError("Network error - Backend unreachable") from e

        # Sent with a token that has since been refreshed: resend, no new refresh.
        if (
            response.status_code == 401
            and self._token
            and self._token != sent_token
            and options.retry
            and not refreshed
        ):
            return await self._send(method, url, data, options, refreshed=True)

        if (
            response.status_code == 401
            and self._refresh_token
            and options.retry
            and not refreshed
        ):
            try:
                await self._refresh_access_token()
            except DbBuilderError as e:
                logger.warning("Token refresh failed: %s", e)
                self.clear_tokens()
                raise AuthenticationError("Session expired, please login again") from e
            return await self._send(method, url, data, options, refreshed=True)

        if not response.is_success:
            self._raise_for_status(response)

        return self._decode(response)

    async def _retry(
        self,
        fn: Callable[[], Awaitable[T]],
        retry_count: int,
        retry_delay: float,
    ) -> T:
        """Run ``fn`` with exponential backoff.

        Client faults (validation, authentication, authorization, not found)
        are raised immediately.  Anything else from ``db_builder.errors`` is
        retried until ``retry_count`` retries are used up.
        """
        attempt = 0
        while True:
            try:
                return await fn()
            except NON_RETRYABLE_ERRORS:
                raise
            except DbBuilderError as e:
                if attempt >= retry_count:
                    raise
                delay = retry_delay * (2 ** attempt)
                logger.warning(
                    "Retry attempt %d/%d after %.1fs: %s",
                    attempt + 1,
                    retry_count,
                    delay,
                    e,
                )
                await asyncio.sleep(delay)
                attempt += 1

    async def _refresh_access_token(self) -> str:
        """Refresh the access token, sharing one in-flight refresh.

        Concurrent callers await the same task, so N simultaneous 401s
        produce a single ``POST /auth/refresh``.
        """
        task = self._refresh_task
        if task is None:
            if not self._refresh_token:
                raise AuthenticationError("No refresh token available")
            task = asyncio.get_running_loop().create_task(self._do_refresh())
            self._refresh_task = task
            task.add_done_callback(self._forget_refresh_task)
        return await task

    def _forget_refresh_task(self, task: "asyncio.Task[str]") -> None:
        if self._refresh_task is task:
            self._refresh_task = None

    async def _do_refresh(self) -> str:
        logger.info("Refreshing access token")
        try:
            response = await self._http.post(
                self.build_url("/auth/refresh"),
                json={"refreshToken": self._refresh_token},
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise NetworkError("Network error - Backend unreachable") from e

        if not response.is_success:
            self.clear_tokens()
            raise AuthenticationError("Token refresh failed")

        body = self._error_body(response)
        new_token = body.get("token") or body.get("accessToken")
        if not new_token:
            self.clear_tokens()
            raise AuthenticationError("Token refresh failed")

        self.set_tokens(new_token, body.get("refreshToken"))
        return new_token

    async def request(
        self,
        method: str,
        endpoint: str,
        data: Any = None,
        options: RequestOptions | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Args:
            method: HTTP method.
            endpoint: Path below the base URL, starting with ``/``.
            data: JSON-serializable body, or ``None``.
            options: Per-request options; client defaults fill the gaps.

        Returns:
            Decoded JSON, or ``None`` for an empty body.

        Raises:
            DbBuilderError: One of the typed errors in ``db_builder.errors``.
        """
        options = options or RequestOptions()
        url = self.build_url(endpoint, options.params)

        async def attempt() -> Any:
            return await self._send(method, url, data, options)

        if not options.retry:
            return await attempt()

        retry_count = options.retry_count if options.retry_count is not None else self.retry_count
        retry_delay = options.retry_delay if options.retry_delay is not None else self.retry_delay
        return await self._retry(attempt, retry_count, retry_delay)

    # ------------------------------------------------------------------
    # HTTP methods
    # ------------------------------------------------------------------

    async def get(self, endpoint: str, options: RequestOptions | None = None) -> Any:
        return await self.request("GET", endpoint, None, options)

    async def post(
        self, endpoint: str, data: Any = None, options: RequestOptions | None = None
    ) -> Any:
        return await self.request("POST", endpoint, data, options)

    async def put(
        self, endpoint: str, data: Any = None, options: RequestOptions | None = None
    ) -> Any:
        return await self.request("PUT", endpoint, data, options)

    async def patch(
        self, endpoint: str, data: Any = None, options: RequestOptions | None = None
    ) -> Any:
        return await self.request("PATCH", endpoint, data, options)

    async def delete(self, endpoint: str, options: RequestOptions | None = None) -> Any:
        return await self.request("DELETE", endpoint, None, options)

    # ------------------------------------------------------------------
    # Generic Handler
    # ------------------------------------------------------------------

    @staticmethod
    def _merge_params(
        options: RequestOptions | None, params: QueryParams | None
    ) -> RequestOptions:
        return (options or RequestOptions()).with_params(params)

    async def list_resources(
        self,
        resource: str,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        return await self.get(f"/data/{resource}", self._merge_params(options, params))

    async def get_resource(
        self,
        resource: str,
        resource_id: str | int,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        return await self.get(f"/data/{resource}/{resource_id}", options)

    async def create_resource(
        self,
        resource: str,
        data: dict[str, Any],
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        return await self.post(f"/data/{resource}", data, options)

    async def update_resource(
        self,
        resource: str,
        resource_id: str | int,
        data: dict[str, Any],
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        return await self.put(f"/data/{resource}/{resource_id}", data, options)

    async def delete_resource(
        self,
        resource: str,
        resource_id: str | int,
        options: RequestOptions | None = None,
    ) -> dict[str, Any] | None:
        return await self.delete(f"/data/{resource}/{resource_id}", options)

    async def count_resources(
        self,
        resource: str,
        params: QueryParams | None = None,
        options: RequestOptions | None = None,
    ) -> dict[str, Any]:
        return await self.get(
            f"/data/{resource}/count", self._merge_params(options, params)
        )

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def _remember_session(self, body: Any) -> None:
        if not isinstance(body, dict) or not body.get("token"):
            return
        self.set_tokens(body["token"], body.get("refreshToken"))
        if body.get("user"):
            self._store.set(USER_KEY, json.dumps(body["user"]))

    async def login(self, email: str, password: str) -> ApiResponse[dict[str, Any]]:
        """Log in and store the returned tokens.

        Never raises for backend or network failures; they are reported
        as ``success=False`` with the error message.
        """
        try:
            body = await self.post(
                "/auth/login",
                {"email": email, "password": password},
                RequestOptions(retry=False),
            )
        except DbBuilderError as e:
            logger.info("Login failed for %s: %s", email, e)
            return ApiResponse(success=False, error=str(e) or "Login failed")

        self._remember_session(body)
        return ApiResponse(success=True, data=body)

    async def register(
        self, email: str, password: str, name: str | None = None
    ) -> ApiResponse[dict[str, Any]]:
        """Register a new account; on success the session is stored."""
        payload: dict[str, Any] = {"email": email, "password": password}
        if name is not None:
            payload["name"] = name

        try:
            body = await self.post("/auth/register", payload, RequestOptions(retry=False))
        except DbBuilderError as e:
            logger.info("Registration failed for %s: %s", email, e)
            return ApiResponse(success=False, error=str(e) or "Registration failed")

        self._remember_session(body)
        return ApiResponse(success=True, data=body)

    async def get_current_user(self) -> ApiResponse[dict[str, Any]]:
        """``GET /auth/me``."""
        try:
            body = await self.get("/auth/me")
        except DbBuilderError as e:
            return ApiResponse(success=False, error=str(e) or "Failed to get user")

        user = body.get("user") if isinstance(body, dict) else None
        return ApiResponse(success=True, data=user)

    def logout(self) -> None:
        self.clear_tokens()
