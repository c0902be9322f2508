"""Shared pydantic base for wire models.

The backend speaks camelCase JSON; Python code uses snake_case attributes.
``WireModel`` accepts either spelling on input and dumps camelCase.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model with camelCase aliases and name-based population."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump as a JSON-ready dict using camelCase keys, omitting ``None``."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
