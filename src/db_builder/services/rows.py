"""Row data of a user-defined table.

Rows are read and written only through the Generic Handler, with the
table name as the resource (``/data/<table>``).  There is no local copy.
"""

from typing import Any

from db_builder.client.base import ResourceClient
from db_builder.services.base import ResourceService


class RowsService(ResourceService[dict[str, Any]]):
    """CRUD over the rows of one table."""

    model = dict

    def __init__(self, client: ResourceClient, table_name: str) -> None:
        super().__init__(client)
        if not table_name:
            raise ValueError("table_name is required")
        self.resource = table_name
