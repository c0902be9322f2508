"""Field and relationship editing on table definitions.

Pure functions: each returns a new ``Table`` (or list) and leaves its input
untouched, so the store reducer can use them directly.

Example:
    >>> array_move(["a", "b", "c", "d", "e"], 0, 3)
    ['b', 'c', 'd', 'a', 'e']
"""

import uuid
from datetime import datetime, timezone
from typing import Any, TypeVar

from db_builder.models.project import (
    Field,
    FieldRelationship,
    FieldType,
    FieldValidation,
    RelationshipType,
    Table,
)

T = TypeVar("T")


def new_id() -> str:
    return uuid.uuid4().hex


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def array_move(items: list[T], old_index: int, new_index: int) -> list[T]:
    """Return a copy of ``items`` with one element moved.

    The element at ``old_index`` ends up at ``new_index``; every other
    element keeps its relative order.

    Raises:
        IndexError: If either index is outside ``items``.
    """
    size = len(items)
    if not (0 <= old_index < size) or not (0 <= new_index < size):
        raise IndexError(
            f"Cannot move index {old_index} to {new_index} in list of {size}"
        )
    moved = list(items)
    moved.insert(new_index, moved.pop(old_index))
    return moved


def reorder_fields(table: Table, old_index: int, new_index: int) -> Table:
    return table.model_copy(
        update={"fields": array_move(table.fields, old_index, new_index)}
    )


def reorder_fields_by_id(table: Table, active_id: str, over_id: str) -> Table:
    """Drag-and-drop reorder: move field ``active_id`` to where ``over_id`` is.

    Unknown ids or dropping a field on itself leave the table unchanged.
    """
    if active_id == over_id:
        return table
    ids = [f.id for f in table.fields]
    if active_id not in ids or over_id not in ids:
        return table
    return reorder_fields(table, ids.index(active_id), ids.index(over_id))


def new_field(
    name: str,
    type: FieldType | str = FieldType.STRING,
    required: bool = False,
    validation: FieldValidation | dict[str, Any] | None = None,
    description: str | None = None,
) -> Field:
    """Build a field with a fresh id.

    Empty validation rules and blank descriptions are dropped.

    Raises:
        ValueError: If ``name`` is blank or ``type`` is not a ``FieldType``.
    """
    name = name.strip()
    if not name:
        raise ValueError("Field name is required")
    if isinstance(validation, dict):
        validation = FieldValidation.model_validate(validation)
    if validation is not None and validation.is_empty():
        validation = None
    description = description.strip() if description else None
    return Field(
        id=new_id(),
        name=name,
        type=FieldType(type),
        required=required,
        validation=validation,
        description=description or None,
    )


def add_field(table: Table, field: Field) -> Table:
    """Append ``field``; names must stay unique within the table."""
    if field.name in table.field_names():
        raise ValueError(f"Field '{field.name}' already exists in table '{table.name}'")
    return table.model_copy(update={"fields": [*table.fields, field]})


def update_field(table: Table, field_id: str, **changes: Any) -> Table:
    """Apply ``changes`` (name, type, required, validation, description).

    ``None`` values are ignored.  Unknown ``field_id`` leaves the table
    unchanged.
    """
    changes = {k: v for k, v in changes.items() if v is not None}
    if "type" in changes:
        changes["type"] = FieldType(changes["type"])
    if isinstance(changes.get("validation"), dict):
        changes["validation"] = FieldValidation.model_validate(changes["validation"])
    if "name" in changes:
        clash = [f for f in table.fields if f.name == changes["name"] and f.id != field_id]
        if clash:
            raise ValueError(
                f"Field '{changes['name']}' already exists in table '{table.name}'"
            )

    fields = [
        f.model_copy(update=changes) if f.id == field_id else f
        for f in table.fields
    ]
    return table.model_copy(update={"fields": fields})


def delete_field(table: Table, field_id: str) -> Table:
    return table.model_copy(
        update={"fields": [f for f in table.fields if f.id != field_id]}
    )


def new_relationship(
    source_field_id: str,
    target_table_id: str,
    target_field_id: str,
    relationship_type: RelationshipType | str = RelationshipType.ONE_TO_MANY,
    cascade_delete: bool = False,
) -> FieldRelationship:
    """Build a relationship edge with a fresh id and creation time.

    Raises:
        ValueError: If the target table or field is missing.
    """
    if not target_table_id or not target_field_id:
        raise ValueError("Relationship needs a target table and a target field")
    return FieldRelationship(
        id=new_id(),
        source_field_id=source_field_id,
        target_table_id=target_table_id,
        target_field_id=target_field_id,
        relationship_type=RelationshipType(relationship_type),
        cascade_delete=cascade_delete,
        created_at=utc_now(),
    )


def add_relationship(table: Table, field_id: str, relationship: FieldRelationship) -> Table:
    fields = [
        f.model_copy(update={"relationships": [*f.relationships, relationship]})
        if f.id == field_id
        else f
        for f in table.fields
    ]
    return table.model_copy(update={"fields": fields})


def remove_relationship(table: Table, field_id: str, relationship_id: str) -> Table:
    fields = [
        f.model_copy(
            update={
                "relationships": [r for r in f.relationships if r.id != relationship_id]
            }
        )
        if f.id == field_id
        else f
        for f in table.fields
    ]
    return table.model_copy(update={"fields": fields})
