"""
Store Core: In-memory tables and the shared secret persistence contract.

Rows are kept in the persisted column layout (``Model.to_row``), secret
columns therefore only ever hold ciphertext. Every resource follows the
same contract:

- writes serialize a copy of the record right before the row is written,
- reads build the entity graph from rows and deserialize it before it
  leaves the store.

Security Note:
    Never log secret columns. Only log ids, slugs and actions.
"""
from __future__ import annotations

import copy
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Iterator, Optional

from ..exceptions import InvalidRecordError, NotFoundError
from ..models import (
    Credential,
    Environment,
    EnvironmentSecret,
    EnvironmentValue,
    Event,
    EventAction,
    EventType,
    Inventory,
    Project,
    Repository,
    SecretRecord,
    User,
    new_id,
    slugify,
)
from ..vault import cascade
from ..vault.crypto import passphrase_key

logger = logging.getLogger("gexec.store")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Table:
    """Rows of one table keyed by primary key.

    Rows are copied on the way in and out, callers never share a row dict
    with the table.
    """

    def __init__(self, name: str):
        self.name = name
        self._rows: dict[Any, dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, key: Any) -> bool:
        return key in self._rows

    def put(self, key: Any, row: dict[str, Any]) -> None:
        self._rows[key] = copy.deepcopy(row)

    def get(self, key: Any) -> Optional[dict[str, Any]]:
        row = self._rows.get(key)
        return copy.deepcopy(row) if row is not None else None

    def remove(self, key: Any) -> None:
        self._rows.pop(key, None)

    def keys(self) -> list[Any]:
        return list(self._rows.keys())

    def select(self, **criteria: Any) -> list[dict[str, Any]]:
        """Return rows whose columns equal all given criteria."""
        return [
            copy.deepcopy(row) for row in self._rows.values()
            if all(row.get(col) == val for col, val in criteria.items())
        ]

    def first(self, match: Callable[[dict[str, Any]], bool]) -> Optional[dict[str, Any]]:
        for row in self._rows.values():
            if match(row):
                return copy.deepcopy(row)
        return None

    def delete_where(self, **criteria: Any) -> int:
        keys = [
            key for key, row in self._rows.items()
            if all(row.get(col) == val for col, val in criteria.items())
        ]
        for key in keys:
            del self._rows[key]
        return len(keys)


class Client:
    """Holds the tables, the encryption passphrase and the acting principal."""

    TABLES = (
        "projects", "users", "teams", "groups",
        "user_projects", "team_projects", "group_projects",
        "user_teams", "user_groups",
        "credentials", "repositories", "inventories",
        "environments", "environment_secrets", "environment_values",
        "templates", "template_surveys", "template_values", "template_vaults",
        "runners", "events",
    )

    def __init__(self, passphrase: str, principal: Optional[User] = None):
        # raises ConfigurationError before any table exists
        passphrase_key(passphrase)
        self.passphrase = passphrase
        self.principal = principal
        self.tables: dict[str, Table] = {name: Table(name) for name in self.TABLES}

    def table(self, name: str) -> Table:
        return self.tables[name]

    # ------------------------------------------------------------------
    # Audit events
    # ------------------------------------------------------------------

    def record_event(
        self,
        object_type: EventType,
        action: EventAction,
        object_id: str,
        object_display: str,
        project: Optional[Project] = None,
        attrs: Optional[dict[str, Any]] = None,
    ) -> Event:
        event = Event(
            user_id=self.principal.id if self.principal else None,
            project_id=project.id if project else None,
            project_display=project.name if project else "",
            object_id=object_id,
            object_display=object_display,
            object_type=object_type,
            action=action,
            attrs=attrs or {},
        )
        self.table("events").put(event.id, event.to_row())
        logger.debug(
            "Event %s %s %s", object_type.value, action.value, object_id,
        )
        return event

    # ------------------------------------------------------------------
    # Secret persistence contract
    # ------------------------------------------------------------------

    def seal_copy(self, record: SecretRecord) -> SecretRecord:
        """Return a serialized copy of ``record``, ready to be written."""
        sealed = record.model_copy(deep=True)
        cascade.serialize(sealed, self.passphrase)
        return sealed

    def open(self, record: SecretRecord) -> SecretRecord:
        """Deserialize a freshly loaded graph before it leaves the store."""
        cascade.deserialize(record, self.passphrase)
        return record

    # ------------------------------------------------------------------
    # Relation loaders, return sealed graphs
    # ------------------------------------------------------------------

    def load_credential(self, credential_id: Optional[str]) -> Optional[Credential]:
        if not credential_id:
            return None
        row = self.table("credentials").get(credential_id)
        return Credential.from_row(row) if row else None

    def load_repository(self, repository_id: Optional[str]) -> Optional[Repository]:
        if not repository_id:
            return None
        row = self.table("repositories").get(repository_id)
        if row is None:
            return None
        record = Repository.from_row(row)
        record.credential = self.load_credential(record.credential_id)
        return record

    def load_inventory(self, inventory_id: Optional[str]) -> Optional[Inventory]:
        if not inventory_id:
            return None
        row = self.table("inventories").get(inventory_id)
        if row is None:
            return None
        record = Inventory.from_row(row)
        record.repository = self.load_repository(record.repository_id)
        record.credential = self.load_credential(record.credential_id)
        record.become = self.load_credential(record.become_id)
        return record

    def load_environment(self, environment_id: Optional[str]) -> Optional[Environment]:
        if not environment_id:
            return None
        row = self.table("environments").get(environment_id)
        if row is None:
            return None
        record = Environment.from_row(row)
        # insertion order of the child tables is the collection order
        record.secrets = [
            EnvironmentSecret.from_row(row)
            for row in self.table("environment_secrets").select(environment_id=record.id)
        ]
        record.values = [
            EnvironmentValue.from_row(row)
            for row in self.table("environment_values").select(environment_id=record.id)
        ]
        return record


class Resource:
    """Project scoped resource stored in a single table.

    Subclasses set ``table_name``, ``model``, ``not_found`` and
    ``event_type`` and may extend ``_load``, ``_validate`` and ``_write``.
    """

    table_name: str = ""
    model: type[SecretRecord] = SecretRecord
    not_found: type[NotFoundError] = NotFoundError
    event_type: EventType

    def __init__(self, client: Client):
        self.client = client

    @property
    def table(self) -> Table:
        return self.client.table(self.table_name)

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _load(self, row: dict[str, Any]) -> SecretRecord:
        """Build the sealed entity graph for a row."""
        return self.model.from_row(row)

    def _validate(self, project: Project, record: SecretRecord) -> None:
        self._validate_name(project, record)

    def _write(self, sealed: SecretRecord) -> None:
        self.table.put(sealed.id, sealed.to_row())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _rows(self, project: Project) -> Iterator[dict[str, Any]]:
        yield from self.table.select(project_id=project.id)

    def _find(self, project: Project, name: str) -> Optional[dict[str, Any]]:
        return self.table.first(
            lambda row: row.get("project_id") == project.id
            and name in (row["id"], row.get("slug"))
        )

    def _taken(self, project: Project, column: str, value: str, record_id: str) -> bool:
        return any(
            row[column] == value and row["id"] != record_id
            for row in self._rows(project)
        )

    def _slugify(self, project: Project, record: SecretRecord) -> str:
        base = slugify(record.name) or record.id
        slug = base
        while self._taken(project, "slug", slug, record.id):
            slug = slugify(f"{base}-{new_id()[:6]}")
        return slug

    def _validate_name(self, project: Project, record: SecretRecord) -> None:
        if not 3 <= len(record.slug) <= 255:
            raise InvalidRecordError("slug", "the length must be between 3 and 255")
        if self._taken(project, "slug", record.slug, record.id):
            raise InvalidRecordError("slug", "is already taken")
        if not 3 <= len(record.name) <= 255:
            raise InvalidRecordError("name", "the length must be between 3 and 255")
        if self._taken(project, "name", record.name, record.id):
            raise InvalidRecordError("name", "is already taken")

    def _validate_reference(
        self, project: Project, field: str, table: str, value: Optional[str],
    ) -> None:
        if not value:
            return
        row = self.client.table(table).get(value)
        if row is None or row.get("project_id") != project.id:
            raise InvalidRecordError(field, "does not exist")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list(self, project: Project) -> list[SecretRecord]:
        """List all records of a project, secrets decrypted."""
        records = [self._load(row) for row in self._rows(project)]
        records.sort(key=lambda r: r.name)
        for record in records:
            self.client.open(record)
        return records

    def show(self, project: Project, name: str) -> SecretRecord:
        """Load a record by id or slug, secrets decrypted.

        Raises:
            NotFoundError: If the record does not exist within the project.
        """
        row = self._find(project, name)
        if row is None:
            raise self.not_found(name)
        return self.client.open(self._load(row))

    def create(self, project: Project, record: SecretRecord) -> SecretRecord:
        """Persist a new record, serializing its secrets first."""
        record.project_id = project.id
        if not record.slug:
            record.slug = self._slugify(project, record)
        self._validate(project, record)
        record.created_at = record.updated_at = utcnow()
        self._write(self.client.seal_copy(record))
        self.client.record_event(
            self.event_type, EventAction.CREATE,
            record.id, record.name, project,
        )
        logger.debug("Created %s %s", self.table_name, record.id)
        return self.show(project, record.id)

    def update(self, project: Project, record: SecretRecord) -> SecretRecord:
        """Persist changes of an existing record, serializing its secrets first."""
        if self._find(project, record.id) is None:
            raise self.not_found(record.id)
        record.project_id = project.id
        if not record.slug:
            record.slug = self._slugify(project, record)
        self._validate(project, record)
        record.updated_at = utcnow()
        self._write(self.client.seal_copy(record))
        self.client.record_event(
            self.event_type, EventAction.UPDATE,
            record.id, record.name, project,
        )
        logger.debug("Updated %s %s", self.table_name, record.id)
        return self.show(project, record.id)

    def delete(self, project: Project, name: str) -> None:
        row = self._find(project, name)
        if row is None:
            raise self.not_found(name)
        self._remove(row)
        self.client.record_event(
            self.event_type, EventAction.DELETE,
            row["id"], row.get("name", ""), project,
        )
        logger.debug("Deleted %s %s", self.table_name, row["id"])

    def _remove(self, row: dict[str, Any]) -> None:
        self.table.remove(row["id"])
