"""Project definition export and import.

Exports are JSON files holding a ``metadata`` header and the project
definition in wire (camelCase) form.  Importing creates a NEW project:
every table, field and relationship gets a fresh id, and relationship
references (``sourceFieldId``, ``targetTableId``, ``targetFieldId``) are
remapped through old-to-new id maps.  Relationships whose target is not
part of the export are dropped and counted.

Usage:
    from db_builder.backup.export_import import (
        export_project,
        import_project,
        validate_export,
    )

    # Export
    path = await export_project(client, "p1")

    # Validate (sync -- local file read only)
    report = validate_export(path)

    # Import as a copy
    summary = await import_project(client, path, name="Shop (copy)")
"""

import json
import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from db_builder.backup.models import EXPORT_VERSION, ExportMetadata
from db_builder.client.base import ResourceClient
from db_builder.fields import new_id, utc_now
from db_builder.models.project import Field, FieldRelationship, Project, Table
from db_builder.services.projects import ProjectsService

logger = logging.getLogger(__name__)


async def export_project(
    client: ResourceClient,
    project_id: str,
    output_path: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> str:
    """Export one project definition to a JSON file.

    API keys are not exported; an imported project gets its own.

    Args:
        client: Backend client.
        project_id: Project to export.
        output_path: Path to write.  When ``None``, generates a timestamped
            path under ``./exports/``.
        metadata: Optional extra metadata merged into the header.

    Returns:
        Path of the written file.
    """
    response = await ProjectsService(client).get(project_id)
    project = response.data

    if output_path is None:
        exports_dir = Path.cwd() / "exports"
        exports_dir.mkdir(exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H%M")
        output_path = str(exports_dir / f"project-{project.id}-{timestamp}.json")

    header = ExportMetadata(
        created_at=utc_now(),
        project_id=project.id,
        project_name=project.name,
        table_count=len(project.tables),
        field_count=sum(len(t.fields) for t in project.tables),
    )
    document: dict[str, Any] = {
        "metadata": {**header.model_dump(), **(metadata or {})},
        "project": project.model_copy(
            update={"api_key": "", "api_keys": []}
        ).to_wire(),
    }

    output_path_obj = Path(output_path)
    output_path_obj.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(document, f, indent=2, ensure_ascii=False)

    logger.info(
        "Exported project %s (%d tables) to %s",
        project.id,
        header.table_count,
        output_path,
    )
    return output_path


def _dangling_relationships(project: Project) -> list[tuple[Table, Field, FieldRelationship]]:
    """Relationships whose target table or field is not in ``project``."""
    field_ids = {t.id: {f.id for f in t.fields} for t in project.tables}
    dangling = []
    for table in project.tables:
        for field in table.fields:
            for rel in field.relationships:
                targets = field_ids.get(rel.target_table_id)
                if targets is None or rel.target_field_id not in targets:
                    dangling.append((table, field, rel))
    return dangling


def validate_export(export_path: str) -> dict[str, Any]:
    """Validate an export file's format and internal references.

    Errors (the file cannot be imported): unreadable file, invalid JSON,
    missing ``metadata`` / ``project``, unsupported version, malformed
    project, duplicate table names, duplicate field names in a table.

    Warnings: missing metadata fields, relationships pointing outside
    the export (they are dropped on import).

    Returns:
        Dict with ``valid`` (bool), ``errors`` (list[str]),
        and ``warnings`` (list[str]).
    """
    errors: list[str] = []
    warnings: list[str] = []

    try:
        with open(export_path, "r", encoding="utf-8") as f:
            document = json.load(f)
    except FileNotFoundError:
        errors.append(f"Export file not found: {export_path}")
        return {"valid": False, "errors": errors, "warnings": warnings}
    except json.JSONDecodeError as e:
        errors.append(f"Invalid JSON: {e}")
        return {"valid": False, "errors": errors, "warnings": warnings}

    if not isinstance(document, dict):
        errors.append("Export must be a JSON object")
        return {"valid": False, "errors": errors, "warnings": warnings}

    for key in ("metadata", "project"):
        if key not in document:
            errors.append(f"Missing required key: {key}")
    if errors:
        return {"valid": False, "errors": errors, "warnings": warnings}

    metadata = document["metadata"]
    for key in ("created_at", "project_id", "version"):
        if key not in metadata:
            warnings.append(f"Missing metadata field: {key}")

    version = metadata.get("version")
    if version != EXPORT_VERSION:
        errors.append(
            f"Unsupported export version '{version}' (expected '{EXPORT_VERSION}')"
        )

    try:
        project = Project.model_validate(document["project"])
    except PydanticValidationError as e:
        errors.append(f"Invalid project definition: {e.error_count()} errors")
        return {"valid": False, "errors": errors, "warnings": warnings}

    for name, count in Counter(t.name for t in project.tables).items():
        if count > 1:
            errors.append(f"Duplicate table name: {name}")
    for table in project.tables:
        for name, count in Counter(table.field_names()).items():
            if count > 1:
                errors.append(f"Duplicate field name in {table.name}: {name}")

    for table, field, rel in _dangling_relationships(project):
        warnings.append(
            f"Relationship {rel.id} on {table.name}.{field.name} "
            f"points outside the export"
        )

    return {"valid": not errors, "errors": errors, "warnings": warnings}


def remap_project(project: Project) -> tuple[list[Table], dict[str, int]]:
    """Copy ``project.tables`` with fresh ids and remapped relationships.

    Returns:
        The new tables and counts of ``tables``, ``fields``,
        ``relationships`` (kept) and ``dropped_relationships``.
    """
    table_ids = {t.id: new_id() for t in project.tables}
    field_ids = {f.id: new_id() for t in project.tables for f in t.fields}
    fields_of = {t.id: {f.id for f in t.fields} for t in project.tables}
    counts = {"tables": 0, "fields": 0, "relationships": 0, "dropped_relationships": 0}

    tables: list[Table] = []
    for table in project.tables:
        fields: list[Field] = []
        for field in table.fields:
            relationships: list[FieldRelationship] = []
            for rel in field.relationships:
                if rel.target_field_id not in fields_of.get(rel.target_table_id, set()):
                    counts["dropped_relationships"] += 1
                    continue
                relationships.append(
                    rel.model_copy(
                        update={
                            "id": new_id(),
                            "source_field_id": field_ids[field.id],
                            "target_table_id": table_ids[rel.target_table_id],
                            "target_field_id": field_ids[rel.target_field_id],
                        }
                    )
                )
            counts["relationships"] += len(relationships)
            fields.append(
                field.model_copy(
                    update={"id": field_ids[field.id], "relationships": relationships}
                )
            )
        counts["fields"] += len(fields)
        tables.append(Table(id=table_ids[table.id], name=table.name, fields=fields))
    counts["tables"] = len(tables)
    return tables, counts


async def import_project(
    client: ResourceClient,
    export_path: str,
    name: str | None = None,
    user_id: str | None = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    """Create a new project from an export file.

    Args:
        client: Backend client.
        export_path: Path to the export JSON file.
        name: Name of the new project.  Defaults to the exported name.
        user_id: Owner to record on the new project, if any.
        dry_run: When ``True``, build and count the new definition
            without creating anything.

    Returns:
        Summary dict with ``dry_run``, ``project_id`` (``None`` in dry
        run), ``name``, and counts of ``tables``, ``fields``,
        ``relationships`` and ``dropped_relationships``.

    Raises:
        ValueError: If the export file fails validation.
    """
    validation = validate_export(export_path)
    if validation["errors"]:
        raise ValueError(f"Invalid export file: {'; '.join(validation['errors'])}")

    with open(export_path, "r", encoding="utf-8") as f:
        document = json.load(f)
    source = Project.model_validate(document["project"])

    tables, counts = remap_project(source)
    new_project = Project(
        id="",
        name=name or source.name,
        description=source.description,
        tables=tables,
        user_id=user_id,
        is_public=source.is_public,
        settings=source.settings,
    )
    payload = new_project.to_wire()
    for key in ("id", "apiKey", "apiKeys", "createdAt"):
        payload.pop(key, None)

    summary: dict[str, Any] = {
        "dry_run": dry_run,
        "project_id": None,
        "name": new_project.name,
        **counts,
    }
    if dry_run:
        return summary

    response = await ProjectsService(client).create(payload)
    summary["project_id"] = response.data.id
    logger.info(
        "Imported %s as project %s (%d tables, %d relationships dropped)",
        export_path,
        response.data.id,
        counts["tables"],
        counts["dropped_relationships"],
    )
    return summary
