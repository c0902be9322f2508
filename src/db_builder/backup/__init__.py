"""Project export and import.

Exports a project definition (tables, fields, relationships) to a JSON
file and re-creates it as a new project with fresh ids.

Usage:
    from db_builder.backup import export_project, import_project, validate_export
"""

from db_builder.backup.export_import import (
    export_project,
    import_project,
    validate_export,
)
from db_builder.backup.models import EXPORT_VERSION, ExportMetadata

__all__ = [
    "EXPORT_VERSION",
    "ExportMetadata",
    "export_project",
    "import_project",
    "validate_export",
]
