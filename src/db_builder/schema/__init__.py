"""Comparison between project definitions and backend tables.

Usage:
    from db_builder.schema import expected_columns, validate_schema
"""

from db_builder.schema.comparator import (
    columns_from_tables_detailed,
    expected_columns,
    validate_schema,
)
from db_builder.schema.models import (
    FieldDiff,
    TableComparison,
    TableComparisonResult,
    TableStatus,
)

__all__ = [
    "validate_schema",
    "expected_columns",
    "columns_from_tables_detailed",
    "TableComparisonResult",
    "TableComparison",
    "TableStatus",
    "FieldDiff",
]
