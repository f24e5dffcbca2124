from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from backend.models import Client, Profile, ServiceType, User
from backend.repositories import RecordRepository
from core.errors import BackendError, PermissionDeniedError
from services.permissions import DashboardScreen, resolve_screen
from services.session import Session
from utils.dialogs import Confirmer, Decision, Outcome

LOGGER = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(slots=True, frozen=True)
class FormField:
    name: str
    label: str
    required: bool = False
    required_on_create: bool = False
    write_only: bool = False
    multiline: bool = False
    max_length: int = 200
    placeholder: str = ""
    choices: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class RecordSchema(Generic[R]):
    screen: DashboardScreen
    noun: str
    fields: tuple[FormField, ...]
    repository: Callable[[Session], RecordRepository[R]]
    describe: Callable[[R], str]

    def initial_values(self, record: R | None) -> dict[str, str]:
        values: dict[str, str] = {}
        for form_field in self.fields:
            if record is None or form_field.write_only:
                values[form_field.name] = ""
                continue
            value = getattr(record, form_field.name, None)
            values[form_field.name] = "" if value is None else str(value)
        return values


def _describe_user(user: User) -> str:
    return f"{user.username} ({user.profile.value})"


def _describe_client(client: Client) -> str:
    detail = client.company or client.email
    state = "active" if client.active else "inactive"
    return f"{client.name} - {detail} [{state}]"


def _describe_service_type(service_type: ServiceType) -> str:
    state = "active" if service_type.active else "inactive"
    return f"{service_type.name} [{state}]"


USER_SCHEMA: RecordSchema[User] = RecordSchema(
    screen=DashboardScreen.USERS,
    noun="User",
    fields=(
        FormField("username", "Username", required=True, max_length=80, placeholder="first.last"),
        FormField(
            "password",
            "Password (blank keeps the current one)",
            required_on_create=True,
            write_only=True,
            max_length=128,
        ),
        FormField(
            "profile",
            "Profile",
            required=True,
            max_length=20,
            placeholder=" | ".join(profile.value for profile in Profile),
            choices=tuple(profile.value for profile in Profile),
        ),
    ),
    repository=lambda session: session.users,
    describe=_describe_user,
)

CLIENT_SCHEMA: RecordSchema[Client] = RecordSchema(
    screen=DashboardScreen.CLIENTS,
    noun="Client",
    fields=(
        FormField("name", "Name", required=True, max_length=120),
        FormField("email", "Email", required=True, max_length=120),
        FormField("phone", "Phone", max_length=40, placeholder="(11) 99999-9999"),
        FormField("company", "Company", max_length=120),
        FormField("address", "Address", multiline=True, max_length=500),
    ),
    repository=lambda session: session.clients,
    describe=_describe_client,
)

SERVICE_TYPE_SCHEMA: RecordSchema[ServiceType] = RecordSchema(
    screen=DashboardScreen.SERVICE_TYPES,
    noun="Service type",
    fields=(
        FormField("name", "Name", required=True, max_length=120, placeholder="IT consulting"),
        FormField("description", "Description", multiline=True, max_length=1000),
    ),
    repository=lambda session: session.service_types,
    describe=_describe_service_type,
)

SCHEMAS_BY_SCREEN: dict[DashboardScreen, RecordSchema[Any]] = {
    schema.screen: schema for schema in (USER_SCHEMA, CLIENT_SCHEMA, SERVICE_TYPE_SCHEMA)
}


@dataclass(slots=True)
class FormDialog(Generic[R]):
    """An open create/edit dialog; ``editing`` is None when creating."""

    schema: RecordSchema[R]
    editing: R | None
    values: dict[str, str] = field(default_factory=dict)

    @property
    def is_create(self) -> bool:
        return self.editing is None

    @property
    def title(self) -> str:
        return f"{'New' if self.is_create else 'Edit'} {self.schema.noun.lower()}"

    def validate(self, values: dict[str, str]) -> str | None:
        for form_field in self.schema.fields:
            value = values.get(form_field.name, "").strip()
            required = form_field.required or (form_field.required_on_create and self.is_create)
            if required and not value:
                return f"{form_field.label.split(' (')[0]} is required."
            if value and form_field.choices and value not in form_field.choices:
                return f"{form_field.label} must be one of: {', '.join(form_field.choices)}."
        return None

    def payload(self, values: dict[str, str]) -> dict[str, Any]:
        body: dict[str, Any] = {}
        for form_field in self.schema.fields:
            value = values.get(form_field.name, "")
            if form_field.write_only:
                if not value:
                    # Blank write-only field on edit means "keep the stored value".
                    continue
                body[form_field.name] = value
                continue
            body[form_field.name] = value.strip()
        return body


class CrudScreen(Generic[R]):
    """List + dialog-form screen shared by users, clients and service types."""

    def __init__(self, session: Session, schema: RecordSchema[R]) -> None:
        user = session.require_user()
        if resolve_screen(user.profile, schema.screen) is not schema.screen:
            raise PermissionDeniedError()
        self.session = session
        self.schema = schema
        self.repository = schema.repository(session)
        self.records: list[R] = []
        self.loading = True
        self.error: str | None = None

    def find(self, record_id: int) -> R | None:
        for record in self.records:
            if getattr(record, "id", None) == record_id:
                return record
        return None

    async def load(self) -> None:
        self.loading = True
        try:
            self.records = await self.repository.list_all()
            self.error = None
        except BackendError as exc:
            LOGGER.warning("Could not load %s list: %s", self.schema.screen.value, exc.user_message)
            self.records = []
            self.error = exc.user_message
        self.loading = False

    def open_create(self) -> FormDialog[R]:
        return FormDialog(schema=self.schema, editing=None, values=self.schema.initial_values(None))

    def open_edit(self, record: R) -> FormDialog[R]:
        return FormDialog(schema=self.schema, editing=record, values=self.schema.initial_values(record))

    async def submit(self, dialog: FormDialog[R], values: dict[str, str]) -> Outcome:
        problem = dialog.validate(values)
        if problem:
            return Outcome.failure(problem)
        payload = dialog.payload(values)
        try:
            if dialog.editing is None:
                await self.repository.create(payload)
            else:
                await self.repository.update(int(getattr(dialog.editing, "id")), payload)
        except BackendError as exc:
            LOGGER.warning("Saving %s failed: %s", self.schema.noun.lower(), exc.user_message)
            return Outcome.failure(exc.user_message)
        await self.load()
        verb = "created" if dialog.is_create else "updated"
        return Outcome.success(f"{self.schema.noun} {verb} successfully.")

    async def delete(self, record: R, confirmer: Confirmer) -> Outcome:
        decision = await confirmer.confirm(
            f"Delete {self.schema.noun.lower()} {self.schema.describe(record)}? This cannot be undone."
        )
        if decision is not Decision.CONFIRMED:
            return Outcome.skip(f"{self.schema.noun} was not deleted.")
        try:
            await self.repository.delete(int(getattr(record, "id")))
        except BackendError as exc:
            LOGGER.warning("Deleting %s failed: %s", self.schema.noun.lower(), exc.user_message)
            return Outcome.failure(exc.user_message)
        await self.load()
        return Outcome.success(f"{self.schema.noun} deleted successfully.")
