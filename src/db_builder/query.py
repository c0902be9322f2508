"""Search, filter and sort state for list queries.

Filters are typed: each ``FilterOption`` names a field, one operator from
the closed ``FilterOperator`` set and a value.  ``SearchState`` collects
them and serializes to backend query parameters only at the HTTP boundary
(``to_query_params``):

- ``search``: free-text query
- ``<field>=<op>.<value>`` per filter (``is.null`` / ``not.null`` for the
  null checks, comma-joined values for ``in``)
- ``sort``: ``field`` ascending, ``-field`` descending

Example:
    >>> state = SearchState()
    >>> state.set_query("acme")
    >>> state.add_filter(FilterOption("age", FilterOperator.GTE, 18))
    >>> state.set_sort("name", SortDirection.DESC)
    >>> state.to_query_params()
    {'search': 'acme', 'age': 'gte.18', 'sort': '-name'}
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from db_builder.client.options import QueryParams


class FilterOperator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    IN = "in"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class FilterOption:
    """One filter on one field.  ``value`` is ignored by the null checks."""

    field: str
    operator: FilterOperator
    value: Any = None

    def to_param(self) -> str:
        if self.operator is FilterOperator.IS_NULL:
            return "is.null"
        if self.operator is FilterOperator.NOT_NULL:
            return "not.null"
        value = self.value
        if self.operator is FilterOperator.IN and isinstance(value, (list, tuple, set)):
            value = ",".join(str(v) for v in value)
        return f"{self.operator.value}.{value}"


@dataclass(frozen=True)
class SortOption:
    field: str
    direction: SortDirection = SortDirection.ASC

    def to_param(self) -> str:
        return f"-{self.field}" if self.direction is SortDirection.DESC else self.field


@dataclass
class SearchState:
    """Mutable search/filter/sort state, one filter per field."""

    query: str = ""
    filters: list[FilterOption] = field(default_factory=list)
    sort: SortOption | None = None

    def __post_init__(self) -> None:
        self._initial = (self.query, list(self.filters), self.sort)

    @property
    def is_active(self) -> bool:
        """True when any search, filter or sort is applied."""
        return bool(self.query) or bool(self.filters) or self.sort is not None

    # search
    def set_query(self, query: str) -> None:
        self.query = query

    def clear_query(self) -> None:
        self.query = ""

    # filters
    def add_filter(self, option: FilterOption) -> None:
        """Add ``option``, replacing any existing filter on the same field."""
        self.filters = [f for f in self.filters if f.field != option.field]
        self.filters.append(option)

    def remove_filter(self, field_name: str) -> None:
        self.filters = [f for f in self.filters if f.field != field_name]

    def update_filter(
        self,
        field_name: str,
        operator: FilterOperator | None = None,
        value: Any = None,
    ) -> None:
        updated: list[FilterOption] = []
        for f in self.filters:
            if f.field == field_name:
                changes: dict[str, Any] = {}
                if operator is not None:
                    changes["operator"] = operator
                if value is not None:
                    changes["value"] = value
                f = replace(f, **changes)
            updated.append(f)
        self.filters = updated

    def clear_filters(self) -> None:
        self.filters = []

    # sort
    def set_sort(self, field_name: str, direction: SortDirection = SortDirection.ASC) -> None:
        self.sort = SortOption(field_name, direction)

    def toggle_sort(self, field_name: str) -> None:
        """Cycle ascending -> descending -> unsorted for ``field_name``."""
        if self.sort is None or self.sort.field != field_name:
            self.sort = SortOption(field_name, SortDirection.ASC)
        elif self.sort.direction is SortDirection.ASC:
            self.sort = SortOption(field_name, SortDirection.DESC)
        else:
            self.sort = None

    def clear_sort(self) -> None:
        self.sort = None

    def reset(self) -> None:
        """Restore the state this object was created with."""
        query, filters, sort = self._initial
        self.query = query
        self.filters = list(filters)
        self.sort = sort

    def to_query_params(self) -> QueryParams:
        params: QueryParams = {}
        if self.query:
            params["search"] = self.query
        for f in self.filters:
            params[f.field] = f.to_param()
        if self.sort is not None:
            params["sort"] = self.sort.to_param()
        return params
