"""Export file models.

An export file is a JSON document::

    {
      "metadata": {"created_at": ..., "project_id": ..., "version": "1.0", ...},
      "project": {...camelCase project definition...}
    }
"""

from pydantic import BaseModel

EXPORT_VERSION = "1.0"


class ExportMetadata(BaseModel):
    """Header of a project export file."""

    created_at: str
    project_id: str
    project_name: str
    export_type: str = "project"
    version: str = EXPORT_VERSION
    table_count: int = 0
    field_count: int = 0
