"""Per-request options and query parameter types."""

from dataclasses import dataclass, field, replace
from typing import Any

# limit, offset, page, pageSize, sort, order, search, filter, include, ...
QueryParams = dict[str, Any]


@dataclass
class RequestOptions:
    """Options for a single ``ApiClient`` request.

    ``None`` for ``retry_count``, ``retry_delay`` or ``timeout`` means
    "use the client's default".  ``retry=False`` disables both the
    backoff loop and the 401 token refresh.
    """

    params: QueryParams | None = None
    headers: dict[str, str] = field(default_factory=dict)
    retry: bool = True
    retry_count: int | None = None
    retry_delay: float | None = None
    timeout: float | None = None

    def with_params(self, params: QueryParams | None) -> "RequestOptions":
        """Copy of these options with ``params`` replaced."""
        return replace(self, params=params)
