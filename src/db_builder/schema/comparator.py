"""Schema comparison using set operations.

Compares the tables and fields a project defines with the tables and
columns the backend reports through ``/debug/tables-detailed``.
Pure logic: no I/O.

Usage:
    from db_builder.schema.comparator import (
        columns_from_tables_detailed,
        expected_columns,
        validate_schema,
    )

    payload = await DebugService(client).tables_detailed()
    result = validate_schema(
        columns_from_tables_detailed(payload),
        expected_columns(project),
        project_name=project.name,
    )
    if not result.valid:
        print(result.format_report())
"""

from typing import Any

from db_builder.models.project import Project
from db_builder.schema.models import TableComparison, TableComparisonResult, TableStatus

_TABLE_NAME_KEYS = ("table_name", "tableName", "name")
_SCHEMA_NAME_KEYS = ("schema_name", "schemaName", "schema")
_COLUMN_NAME_KEYS = ("column_name", "columnName", "name")


def _first(item: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if item.get(key):
            return item[key]
    return None


def expected_columns(project: Project) -> dict[str, set[str]]:
    """Map each table of ``project`` to the set of its field names."""
    return {table.name: set(table.field_names()) for table in project.tables}


def columns_from_tables_detailed(
    payload: Any,
    schema: str | None = None,
) -> dict[str, set[str]]:
    """Parse a ``/debug/tables-detailed`` response into ``{table: {columns}}``.

    Accepts the table list bare or wrapped in ``data`` / ``tables``.  Each
    table entry names itself with ``table_name`` (or ``tableName`` /
    ``name``) and lists ``columns`` as strings or objects carrying
    ``column_name`` (or ``columnName`` / ``name``).  When ``schema`` is
    given, tables from other schemas are skipped.

    Raises:
        ValueError: If the payload holds no table list.
    """
    tables = payload
    if isinstance(tables, dict):
        tables = tables.get("data", tables.get("tables"))
        if isinstance(tables, dict):
            tables = tables.get("tables")
    if not isinstance(tables, list):
        raise ValueError("Unexpected tables-detailed payload: no table list")

    result: dict[str, set[str]] = {}
    for entry in tables:
        if not isinstance(entry, dict):
            continue
        name = _first(entry, _TABLE_NAME_KEYS)
        if not name:
            continue
        if schema is not None and _first(entry, _SCHEMA_NAME_KEYS) not in (None, schema):
            continue

        columns: set[str] = set()
        for column in entry.get("columns") or []:
            if isinstance(column, str):
                columns.add(column)
            elif isinstance(column, dict) and _first(column, _COLUMN_NAME_KEYS):
                columns.add(_first(column, _COLUMN_NAME_KEYS))
        result.setdefault(name, set()).update(columns)
    return result


def validate_schema(
    actual_columns: dict[str, set[str]],
    expected_columns: dict[str, set[str]],
    project_name: str = "",
) -> TableComparisonResult:
    """Compare backend tables with the tables a project expects.

    Every table name from either side gets one ``TableComparison``, sorted
    by name.  Backend-only tables are reported as ``extra`` and do not
    affect ``valid``.

    Examples:
        >>> result = validate_schema(
        ...     {"users": {"id"}},
        ...     {"users": {"id", "name"}},
        ... )
        >>> result.valid
        False
        >>> result.missing_fields[0].field
        'name'
    """
    tables: list[TableComparison] = []
    for name in sorted(set(actual_columns) | set(expected_columns)):
        if name not in expected_columns:
            tables.append(TableComparison(name=name, status=TableStatus.EXTRA))
        elif name not in actual_columns:
            tables.append(TableComparison(name=name, status=TableStatus.MISSING))
        else:
            missing = sorted(expected_columns[name] - actual_columns[name])
            status = TableStatus.INCOMPLETE if missing else TableStatus.MATCH
            tables.append(TableComparison(name=name, status=status, missing_fields=missing))

    return TableComparisonResult(project_name=project_name, tables=tables)
