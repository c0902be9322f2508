"""Session state: immutable state, pure reducer, store and session facade.

``reduce(state, action)`` never mutates ``state``; it returns a new
``DatabaseState`` (or the same object for unknown actions and no-ops).
Table actions apply to the selected project, field actions to the
selected table, and ``selected_project`` / ``selected_table`` are kept in
step with the objects in ``projects``.

Usage:
    store = Store()
    session = DatabaseSession(client, store)
    if await session.login("me@example.com", "secret"):
        store.dispatch(Action(ActionType.SELECT_PROJECT, {"project_id": "p1"}))
        print(store.state.selected_project.name)
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic import Field as PydanticField
from pydantic import ValidationError as PydanticValidationError

from db_builder.apikeys import generate_key_with_permissions, generate_project_api_key
from db_builder.client.http import ApiClient
from db_builder.errors import DbBuilderError
from db_builder.fields import (
    add_field,
    add_relationship,
    delete_field,
    new_field,
    new_id,
    remove_relationship,
    reorder_fields,
    update_field,
)
from db_builder.models.pricing import Campaign, PricingPlan
from db_builder.models.project import Project, Table
from db_builder.models.user import User
from db_builder.services.projects import ProjectsService

logger = logging.getLogger(__name__)


class DatabaseState(BaseModel):
    model_config = ConfigDict(frozen=True)

    projects: list[Project] = PydanticField(default_factory=list)
    selected_project: Project | None = None
    selected_table: Table | None = None
    user: User | None = None
    is_authenticated: bool = False
    pricing_plans: list[PricingPlan] = PydanticField(default_factory=list)
    campaigns: list[Campaign] = PydanticField(default_factory=list)


class ActionType(str, Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    REGISTER = "REGISTER"
    SET_PROJECTS = "SET_PROJECTS"
    ADD_PROJECT = "ADD_PROJECT"
    UPDATE_PROJECT = "UPDATE_PROJECT"
    DELETE_PROJECT = "DELETE_PROJECT"
    SELECT_PROJECT = "SELECT_PROJECT"
    ADD_TABLE = "ADD_TABLE"
    DELETE_TABLE = "DELETE_TABLE"
    SELECT_TABLE = "SELECT_TABLE"
    ADD_FIELD = "ADD_FIELD"
    UPDATE_FIELD = "UPDATE_FIELD"
    DELETE_FIELD = "DELETE_FIELD"
    REORDER_FIELDS = "REORDER_FIELDS"
    ADD_FIELD_RELATIONSHIP = "ADD_FIELD_RELATIONSHIP"
    REMOVE_FIELD_RELATIONSHIP = "REMOVE_FIELD_RELATIONSHIP"
    ADD_API_KEY = "ADD_API_KEY"
    UPDATE_API_KEY = "UPDATE_API_KEY"
    DELETE_API_KEY = "DELETE_API_KEY"
    REGENERATE_MAIN_API_KEY = "REGENERATE_MAIN_API_KEY"
    SET_PRICING_PLANS = "SET_PRICING_PLANS"
    ADD_PRICING_PLAN = "ADD_PRICING_PLAN"
    UPDATE_PRICING_PLAN = "UPDATE_PRICING_PLAN"
    DELETE_PRICING_PLAN = "DELETE_PRICING_PLAN"
    SET_CAMPAIGNS = "SET_CAMPAIGNS"
    ADD_CAMPAIGN = "ADD_CAMPAIGN"
    UPDATE_CAMPAIGN = "UPDATE_CAMPAIGN"
    DELETE_CAMPAIGN = "DELETE_CAMPAIGN"


@dataclass(frozen=True)
class Action:
    """A state transition request.  Payload keys are snake_case."""

    type: ActionType | str
    payload: dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Helpers
# ============================================================================


def _put_project(state: DatabaseState, project: Project, **changes: Any) -> DatabaseState:
    """Replace ``project`` in ``state`` and re-point the selections at it."""
    projects = [project if p.id == project.id else p for p in state.projects]
    selected = state.selected_project
    table = state.selected_table
    if selected is not None and selected.id == project.id:
        selected = project
        if table is not None:
            table = project.find_table(table.id)
    update = {"projects": projects, "selected_project": selected, "selected_table": table}
    update.update(changes)
    return state.model_copy(update=update)


def _put_table(project: Project, table: Table) -> Project:
    tables = [table if t.id == table.id else t for t in project.tables]
    return project.model_copy(update={"tables": tables})


def _find_project(state: DatabaseState, project_id: str) -> Project | None:
    return next((p for p in state.projects if p.id == project_id), None)


def _selected_table_of(state: DatabaseState) -> tuple[Project, Table] | None:
    """Current (project, table) as stored in ``projects``."""
    if state.selected_project is None or state.selected_table is None:
        return None
    project = _find_project(state, state.selected_project.id)
    if project is None:
        return None
    table = project.find_table(state.selected_table.id)
    if table is None:
        return None
    return project, table


def _edit_selected_table(
    state: DatabaseState, edit: Callable[[Table], Table]
) -> DatabaseState:
    current = _selected_table_of(state)
    if current is None:
        return state
    project, table = current
    return _put_project(state, _put_table(project, edit(table)))


def _merge(model: BaseModel, updates: BaseModel | dict[str, Any]) -> Any:
    """Validated copy of ``model`` with ``updates`` (attribute names) applied."""
    if isinstance(updates, BaseModel):
        updates = updates.model_dump(exclude_unset=True)
    return type(model).model_validate({**model.model_dump(), **updates})


def _upsert(items: list[Any], item: Any, append: bool) -> list[Any]:
    if append:
        return [*items, item]
    return [item if i.id == item.id else i for i in items]


# ============================================================================
# Reducer
# ============================================================================


def _reduce_session(state: DatabaseState, kind: ActionType, p: dict[str, Any]) -> DatabaseState:
    if kind is ActionType.LOGOUT:
        return state.model_copy(
            update={
                "user": None,
                "is_authenticated": False,
                "projects": [],
                "selected_project": None,
                "selected_table": None,
            }
        )
    projects = (p.get("projects") or []) if kind is ActionType.LOGIN else []
    return state.model_copy(
        update={
            "user": p["user"],
            "is_authenticated": True,
            "projects": list(projects),
            "selected_project": None,
            "selected_table": None,
        }
    )


def _reduce_projects(state: DatabaseState, kind: ActionType, p: dict[str, Any]) -> DatabaseState:
    if kind is ActionType.SET_PROJECTS:
        projects = list(p["projects"])
        selected = state.selected_project
        if selected is not None:
            selected = next((x for x in projects if x.id == selected.id), None)
        table = state.selected_table
        if selected is None:
            table = None
        elif table is not None:
            table = selected.find_table(table.id)
        return state.model_copy(
            update={"projects": projects, "selected_project": selected, "selected_table": table}
        )

    if kind is ActionType.ADD_PROJECT:
        project = p["project"]
        return state.model_copy(
            update={
                "projects": [*state.projects, project],
                "selected_project": project,
                "selected_table": None,
            }
        )

    if kind is ActionType.UPDATE_PROJECT:
        project = _find_project(state, p["project_id"])
        if project is None:
            return state
        return _put_project(state, _merge(project, p.get("updates") or {}))

    if kind is ActionType.DELETE_PROJECT:
        project_id = p["project_id"]
        selected = state.selected_project
        if selected is not None and selected.id == project_id:
            selected = None
        return state.model_copy(
            update={
                "projects": [x for x in state.projects if x.id != project_id],
                "selected_project": selected,
                "selected_table": None,
            }
        )

    # SELECT_PROJECT
    return state.model_copy(
        update={
            "selected_project": _find_project(state, p["project_id"]),
            "selected_table": None,
        }
    )


def _reduce_tables(state: DatabaseState, kind: ActionType, p: dict[str, Any]) -> DatabaseState:
    if state.selected_project is None:
        return state
    project = _find_project(state, state.selected_project.id)
    if project is None:
        return state

    if kind is ActionType.ADD_TABLE:
        table = p.get("table") or Table(id=new_id(), name=p["name"].strip())
        if project.find_table_by_name(table.name) is not None:
            raise ValueError(f"Table '{table.name}' already exists in project '{project.name}'")
        updated = project.model_copy(update={"tables": [*project.tables, table]})
        return _put_project(state, updated, selected_table=table)

    if kind is ActionType.DELETE_TABLE:
        table_id = p["table_id"]
        updated = project.model_copy(
            update={"tables": [t for t in project.tables if t.id != table_id]}
        )
        return _put_project(state, updated)

    # SELECT_TABLE
    return state.model_copy(update={"selected_table": project.find_table(p["table_id"])})


def _reduce_fields(state: DatabaseState, kind: ActionType, p: dict[str, Any]) -> DatabaseState:
    if kind is ActionType.ADD_FIELD:
        new = p.get("field") or new_field(
            p["name"],
            p.get("type", "string"),
            p.get("required", False),
            p.get("validation"),
            p.get("description"),
        )
        return _edit_selected_table(state, lambda t: add_field(t, new))

    if kind is ActionType.UPDATE_FIELD:
        changes = {k: v for k, v in p.items() if k != "field_id"}
        return _edit_selected_table(state, lambda t: update_field(t, p["field_id"], **changes))

    if kind is ActionType.DELETE_FIELD:
        return _edit_selected_table(state, lambda t: delete_field(t, p["field_id"]))

    if kind is ActionType.REORDER_FIELDS:
        return _edit_selected_table(
            state, lambda t: reorder_fields(t, p["old_index"], p["new_index"])
        )

    if kind is ActionType.ADD_FIELD_RELATIONSHIP:
        return _edit_selected_table(
            state, lambda t: add_relationship(t, p["field_id"], p["relationship"])
        )

    # REMOVE_FIELD_RELATIONSHIP
    return _edit_selected_table(
        state, lambda t: remove_relationship(t, p["field_id"], p["relationship_id"])
    )


def _reduce_api_keys(state: DatabaseState, kind: ActionType, p: dict[str, Any]) -> DatabaseState:
    project = _find_project(state, p["project_id"])
    if project is None:
        return state

    if kind is ActionType.REGENERATE_MAIN_API_KEY:
        key = generate_project_api_key(project.id, project.name)
        return _put_project(state, project.model_copy(update={"api_key": key}))

    if kind is ActionType.ADD_API_KEY:
        key = generate_key_with_permissions(project.id, p["name"], p.get("permissions") or [])
        if p.get("expires_at"):
            key = key.model_copy(update={"expires_at": p["expires_at"]})
        keys = [*project.api_keys, key]
    elif kind is ActionType.UPDATE_API_KEY:
        changes = {
            k: p[k] for k in ("name", "permissions", "is_active") if p.get(k) is not None
        }
        keys = [
            _merge(k, changes) if k.id == p["key_id"] else k for k in project.api_keys
        ]
    else:
        keys = [k for k in project.api_keys if k.id != p["key_id"]]
    return _put_project(state, project.model_copy(update={"api_keys": keys}))


def _reduce_catalog(state: DatabaseState, kind: ActionType, p: dict[str, Any]) -> DatabaseState:
    if kind is ActionType.SET_PRICING_PLANS:
        return state.model_copy(update={"pricing_plans": list(p["plans"])})
    if kind is ActionType.SET_CAMPAIGNS:
        return state.model_copy(update={"campaigns": list(p["campaigns"])})

    if kind in (ActionType.ADD_PRICING_PLAN, ActionType.UPDATE_PRICING_PLAN):
        plans = _upsert(state.pricing_plans, p["plan"], kind is ActionType.ADD_PRICING_PLAN)
        return state.model_copy(update={"pricing_plans": plans})
    if kind is ActionType.DELETE_PRICING_PLAN:
        plans = [x for x in state.pricing_plans if x.id != p["plan_id"]]
        return state.model_copy(update={"pricing_plans": plans})

    if kind in (ActionType.ADD_CAMPAIGN, ActionType.UPDATE_CAMPAIGN):
        campaigns = _upsert(state.campaigns, p["campaign"], kind is ActionType.ADD_CAMPAIGN)
        return state.model_copy(update={"campaigns": campaigns})
    campaigns = [x for x in state.campaigns if x.id != p["campaign_id"]]
    return state.model_copy(update={"campaigns": campaigns})


_Handler = Callable[[DatabaseState, ActionType, dict[str, Any]], DatabaseState]

_HANDLERS: dict[ActionType, _Handler] = {
    ActionType.LOGIN: _reduce_session,
    ActionType.LOGOUT: _reduce_session,
    ActionType.REGISTER: _reduce_session,
    ActionType.SET_PROJECTS: _reduce_projects,
    ActionType.ADD_PROJECT: _reduce_projects,
    ActionType.UPDATE_PROJECT: _reduce_projects,
    ActionType.DELETE_PROJECT: _reduce_projects,
    ActionType.SELECT_PROJECT: _reduce_projects,
    ActionType.ADD_TABLE: _reduce_tables,
    ActionType.DELETE_TABLE: _reduce_tables,
    ActionType.SELECT_TABLE: _reduce_tables,
    ActionType.ADD_FIELD: _reduce_fields,
    ActionType.UPDATE_FIELD: _reduce_fields,
    ActionType.DELETE_FIELD: _reduce_fields,
    ActionType.REORDER_FIELDS: _reduce_fields,
    ActionType.ADD_FIELD_RELATIONSHIP: _reduce_fields,
    ActionType.REMOVE_FIELD_RELATIONSHIP: _reduce_fields,
    ActionType.ADD_API_KEY: _reduce_api_keys,
    ActionType.UPDATE_API_KEY: _reduce_api_keys,
    ActionType.DELETE_API_KEY: _reduce_api_keys,
    ActionType.REGENERATE_MAIN_API_KEY: _reduce_api_keys,
    ActionType.SET_PRICING_PLANS: _reduce_catalog,
    ActionType.ADD_PRICING_PLAN: _reduce_catalog,
    ActionType.UPDATE_PRICING_PLAN: _reduce_catalog,
    ActionType.DELETE_PRICING_PLAN: _reduce_catalog,
    ActionType.SET_CAMPAIGNS: _reduce_catalog,
    ActionType.ADD_CAMPAIGN: _reduce_catalog,
    ActionType.UPDATE_CAMPAIGN: _reduce_catalog,
    ActionType.DELETE_CAMPAIGN: _reduce_catalog,
}


def reduce(state: DatabaseState, action: Action) -> DatabaseState:
    """Apply ``action`` to ``state`` and return the resulting state.

    Unknown action types return ``state`` unchanged.

    Raises:
        ValueError: For invalid edits (duplicate table or field names,
            blank field names).
        IndexError: For out-of-range reorder indices.
    """
    try:
        kind = ActionType(action.type)
    except ValueError:
        logger.debug("Ignoring unknown action %r", action.type)
        return state
    return _HANDLERS[kind](state, kind, action.payload)


# ============================================================================
# Store
# ============================================================================

Listener = Callable[[DatabaseState], None]


class Store:
    """Holds the current state and notifies subscribers after each dispatch."""

    def __init__(self, state: DatabaseState | None = None) -> None:
        self._state = state if state is not None else DatabaseState()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> DatabaseState:
        return self._state

    def dispatch(self, action: Action) -> DatabaseState:
        new_state = reduce(self._state, action)
        if new_state is not self._state:
            self._state = new_state
            for listener in list(self._listeners):
                listener(new_state)
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


# ============================================================================
# Session
# ============================================================================


class DatabaseSession:
    """Backend-backed operations that keep a ``Store`` in sync.

    Methods report failure through their return value (``False`` /
    ``None``) and log the cause; they do not raise backend errors.
    """

    def __init__(self, client: ApiClient, store: Store | None = None) -> None:
        self.client = client
        self.store = store if store is not None else Store()
        self.projects = ProjectsService(client)

    @property
    def state(self) -> DatabaseState:
        return self.store.state

    def _user_from(self, data: Any) -> User | None:
        raw = data.get("user") if isinstance(data, dict) else None
        if not raw:
            return None
        try:
            return User.model_validate(raw)
        except PydanticValidationError as e:
            logger.error("Unexpected user payload: %s", e)
            return None

    async def _fetch_user_projects(self, user_id: str) -> list[Project]:
        response = await self.projects.get_user_projects(user_id)
        return list(response.data) if response.success else []

    async def login(self, email: str, password: str) -> bool:
        """Log in and preload the user's projects."""
        response = await self.client.login(email, password)
        if not response.success:
            logger.error("Login failed: %s", response.error)
            return False
        user = self._user_from(response.data)
        if user is None:
            logger.error("Login response carried no user")
            return False

        try:
            projects = await self._fetch_user_projects(user.id)
        except DbBuilderError as e:
            logger.warning("Failed to load projects on login: %s", e)
            projects = []

        self.store.dispatch(
            Action(ActionType.LOGIN, {"user": user, "projects": projects})
        )
        return True

    async def register(self, email: str, password: str, name: str | None = None) -> bool:
        response = await self.client.register(email, password, name)
        if not response.success:
            logger.error("Registration failed: %s", response.error)
            return False
        user = self._user_from(response.data)
        if user is None:
            logger.error("Registration response carried no user")
            return False
        self.store.dispatch(Action(ActionType.REGISTER, {"user": user}))
        return True

    def logout(self) -> None:
        self.client.logout()
        self.store.dispatch(Action(ActionType.LOGOUT))

    async def load_user_projects(self) -> bool:
        user = self.state.user
        if user is None:
            logger.debug("Not loading projects: no user logged in")
            return False
        try:
            projects = await self._fetch_user_projects(user.id)
        except DbBuilderError as e:
            logger.error("Failed to load projects: %s", e)
            return False
        self.store.dispatch(Action(ActionType.SET_PROJECTS, {"projects": projects}))
        return True

    async def create_project(self, name: str, description: str | None = None) -> Project | None:
        user = self.state.user
        if user is None:
            logger.error("Cannot create project: user not authenticated")
            return None

        payload: dict[str, Any] = {"name": name.strip(), "userId": user.id}
        if description and description.strip():
            payload["description"] = description.strip()
        try:
            response = await self.projects.create(payload)
        except DbBuilderError as e:
            logger.error("Failed to create project: %s", e)
            return None
        if not response.success:
            logger.error("Failed to create project: %s", response.error)
            return None

        self.store.dispatch(Action(ActionType.ADD_PROJECT, {"project": response.data}))
        return response.data

    async def update_project(self, project_id: str, updates: dict[str, Any]) -> bool:
        try:
            response = await self.projects.update(project_id, updates)
        except DbBuilderError as e:
            logger.error("Failed to update project %s: %s", project_id, e)
            return False
        if not response.success:
            logger.error("Failed to update project %s: %s", project_id, response.error)
            return False

        self.store.dispatch(
            Action(
                ActionType.UPDATE_PROJECT,
                {"project_id": project_id, "updates": response.data},
            )
        )
        return True

    async def delete_project(self, project_id: str) -> bool:
        try:
            await self.projects.delete(project_id)
        except DbBuilderError as e:
            logger.error("Failed to delete project %s: %s", project_id, e)
            return False
        self.store.dispatch(Action(ActionType.DELETE_PROJECT, {"project_id": project_id}))
        return True
