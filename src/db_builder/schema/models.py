"""Result models for comparing a project definition with backend tables.

Each table the project defines or the backend reports gets one
``TableComparison``:

- ``match``: defined by the project and present with every field
- ``incomplete``: present on the backend but missing some fields
- ``missing``: defined by the project, not created on the backend
- ``extra``: on the backend only (warning, never a failure)
"""

from enum import Enum

from pydantic import BaseModel, Field


class TableStatus(str, Enum):
    MATCH = "match"
    INCOMPLETE = "incomplete"
    MISSING = "missing"
    EXTRA = "extra"


class FieldDiff(BaseModel):
    """A project field with no backend column."""

    table: str
    field: str
    message: str = ""


class TableComparison(BaseModel):
    name: str
    status: TableStatus
    missing_fields: list[str] = Field(default_factory=list)


class TableComparisonResult(BaseModel):
    """Outcome of comparing one project's tables with the backend.

    Example:
        >>> result = TableComparisonResult(project_name="Shop")
        >>> result.valid, result.error_count
        (True, 0)
        >>> result.format_report()
        "Project 'Shop' matches the backend"
    """

    project_name: str = ""
    tables: list[TableComparison] = Field(default_factory=list)

    def _names(self, status: TableStatus) -> list[str]:
        return [t.name for t in self.tables if t.status is status]

    @property
    def missing_tables(self) -> list[str]:
        return self._names(TableStatus.MISSING)

    @property
    def extra_tables(self) -> list[str]:
        return self._names(TableStatus.EXTRA)

    @property
    def missing_fields(self) -> list[FieldDiff]:
        return [
            FieldDiff(
                table=t.name,
                field=name,
                message=f"Field '{name}' of table '{t.name}' has no backend column",
            )
            for t in self.tables
            if t.status is TableStatus.INCOMPLETE
            for name in t.missing_fields
        ]

    @property
    def valid(self) -> bool:
        return self.error_count == 0

    @property
    def error_count(self) -> int:
        """Missing tables plus missing fields; extra tables do not count."""
        return len(self.missing_tables) + sum(
            len(t.missing_fields) for t in self.tables if t.status is TableStatus.INCOMPLETE
        )

    def stats(self) -> dict[TableStatus, int]:
        """Table count per status, every status present."""
        counts = {status: 0 for status in TableStatus}
        for table in self.tables:
            counts[table.status] += 1
        return counts

    def format_report(self) -> str:
        subject = f"Project '{self.project_name}'" if self.project_name else "Project"
        if self.valid:
            report = f"{subject} matches the backend"
            if self.extra_tables:
                report += f" (backend-only tables: {', '.join(self.extra_tables)})"
            return report

        lines = [f"{subject} differs from the backend:"]

        if self.missing_tables:
            lines.append(f"\n  Tables not on the backend ({len(self.missing_tables)}):")
            for name in self.missing_tables:
                lines.append(f"    - {name}")

        missing_fields = self.missing_fields
        if missing_fields:
            lines.append(f"\n  Fields without a column ({len(missing_fields)}):")
            for diff in missing_fields:
                lines.append(f"    - {diff.table}.{diff.field}")

        if self.extra_tables:
            lines.append(f"\n  Backend-only tables (warning): {', '.join(self.extra_tables)}")

        return "\n".join(lines)
