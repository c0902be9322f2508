"""Project, table, field and API key models.

A ``Project`` owns zero or more ``Table`` entities, each owning an ordered
list of ``Field`` entities.  Field order is significant and is persisted as
list position.  ``FieldRelationship`` is a directed edge from a field to a
field of another (or the same) table; cycles are not checked.

Example:
    >>> field = Field(id="f1", name="email", type=FieldType.STRING, required=True)
    >>> table = Table(id="t1", name="users", fields=[field])
    >>> table.field_names()
    ['email']
"""

from enum import Enum

from pydantic import Field as PydanticField

from db_builder.models.base import WireModel


class FieldType(str, Enum):
    """Supported field types."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT = "object"
    ARRAY = "array"
    RELATION = "relation"
    CURRENCY = "currency"
    WEIGHT = "weight"


class RelationshipType(str, Enum):
    """Relationship cardinality."""

    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"


class ApiKeyPermission(str, Enum):
    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    ADMIN = "admin"


class FieldValidation(WireModel):
    """Optional validation rules; which keys apply depends on the field type."""

    # string
    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None

    # number
    min_value: float | None = None
    max_value: float | None = None

    # date
    date_type: str | None = None  # "date" or "datetime"

    # array
    array_item_type: str | None = None
    min_item_count: int | None = None
    max_item_count: int | None = None

    # relation
    related_table: str | None = None
    related_field: str | None = None
    relationship_type: RelationshipType | None = None
    cascade_delete: bool | None = None

    # currency
    currency: str | None = None
    decimal_places: int | None = None
    only_positive: bool | None = None
    auto_exchange: bool | None = None

    # weight
    weight_unit: str | None = None
    fix_unit: bool | None = None

    def is_empty(self) -> bool:
        """True when no rule is set."""
        return not self.model_dump(exclude_none=True)


class FieldRelationship(WireModel):
    """Directed edge: source field -> target table/field."""

    id: str
    source_field_id: str
    target_table_id: str
    target_field_id: str
    relationship_type: RelationshipType = RelationshipType.ONE_TO_MANY
    cascade_delete: bool = False
    created_at: str = ""


class Field(WireModel):
    """A typed column of a user-defined table."""

    id: str
    name: str
    type: FieldType = FieldType.STRING
    required: bool = False
    validation: FieldValidation | None = None
    description: str | None = None
    relationships: list[FieldRelationship] = PydanticField(default_factory=list)


class Table(WireModel):
    """A user-defined table.  ``name`` is unique within its project."""

    id: str
    name: str
    fields: list[Field] = PydanticField(default_factory=list)

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def find_field(self, field_id: str) -> Field | None:
        for f in self.fields:
            if f.id == field_id:
                return f
        return None


class ApiKey(WireModel):
    """Additional, independently managed API key of a project."""

    id: str
    key: str
    project_id: str
    name: str
    permissions: list[ApiKeyPermission] = PydanticField(default_factory=list)
    is_active: bool = True
    created_at: str = ""
    last_used: str | None = None
    expires_at: str | None = None
    usage_count: int = 0
    rate_limit: int = 1000  # requests per minute


class ProjectSettings(WireModel):
    allow_api_access: bool = True
    require_auth: bool = True
    max_requests_per_minute: int = 1000
    enable_webhooks: bool = False
    webhook_url: str | None = None


class Project(WireModel):
    """A customer-owned namespace of tables (a logical database).

    ``api_key`` is the single main key of the project; ``api_keys`` holds
    additional keys with their own lifecycle.
    """

    id: str
    name: str
    tables: list[Table] = PydanticField(default_factory=list)
    user_id: str | None = None
    created_at: str = ""
    api_key: str = ""
    api_keys: list[ApiKey] = PydanticField(default_factory=list)
    description: str | None = None
    is_public: bool = False
    settings: ProjectSettings = PydanticField(default_factory=ProjectSettings)

    def find_table(self, table_id: str) -> Table | None:
        for t in self.tables:
            if t.id == table_id:
                return t
        return None

    def find_table_by_name(self, name: str) -> Table | None:
        for t in self.tables:
            if t.name == name:
                return t
        return None
