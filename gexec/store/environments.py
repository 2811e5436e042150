"""Environments store, including the environment secrets and values."""
from __future__ import annotations

import logging
from typing import Any, Union

from ..exceptions import (
    EnvironmentNotFoundError,
    EnvironmentSecretNotFoundError,
    EnvironmentValueNotFoundError,
    InvalidRecordError,
)
from ..models import (
    Environment,
    EnvironmentSecret,
    EnvironmentValue,
    EventAction,
    EventType,
    Project,
)
from .base import Resource, utcnow

logger = logging.getLogger("gexec.store")

EnvironmentEntry = Union[EnvironmentSecret, EnvironmentValue]

_CHILDREN = {
    EnvironmentSecret: (
        "environment_secrets", EventType.ENVIRONMENT_SECRET,
        EnvironmentSecretNotFoundError,
    ),
    EnvironmentValue: (
        "environment_values", EventType.ENVIRONMENT_VALUE,
        EnvironmentValueNotFoundError,
    ),
}


class Environments(Resource):
    table_name = "environments"
    model = Environment
    not_found = EnvironmentNotFoundError
    event_type = EventType.ENVIRONMENT

    def _load(self, row: dict[str, Any]) -> Environment:
        return self.client.load_environment(row["id"])

    def _validate(self, project: Project, record: Environment) -> None:
        super()._validate(project, record)
        for kind, entries in (
            (EnvironmentSecret, record.secrets), (EnvironmentValue, record.values),
        ):
            table_name, _, _ = _CHILDREN[kind]
            given = {entry.id for entry in entries}
            names = [entry.name for entry in entries] + [
                row["name"]
                for row in self.client.table(table_name).select(environment_id=record.id)
                if row["id"] not in given
            ]
            if len(names) != len(set(names)):
                raise InvalidRecordError("name", "is already taken")
            for entry in entries:
                self._check_owner(record, entry)

    def _check_owner(self, environment: Environment, entry: EnvironmentEntry) -> None:
        table_name, _, not_found = _CHILDREN[type(entry)]
        row = self.client.table(table_name).get(entry.id)
        if row is not None and row["environment_id"] != environment.id:
            raise not_found(entry.id)

    def _write(self, sealed: Environment) -> None:
        """Upsert the given entries, stored entries not passed are kept."""
        super()._write(sealed)
        secrets = self.client.table("environment_secrets")
        values = self.client.table("environment_values")
        for entry in sealed.secrets:
            self._prepare_entry(sealed, entry)
            secrets.put(entry.id, entry.to_row())
        for entry in sealed.values:
            self._prepare_entry(sealed, entry)
            values.put(entry.id, entry.to_row())

    def _remove(self, row: dict[str, Any]) -> None:
        super()._remove(row)
        self.client.table("environment_secrets").delete_where(environment_id=row["id"])
        self.client.table("environment_values").delete_where(environment_id=row["id"])

    @staticmethod
    def _prepare_entry(environment: Environment, entry: EnvironmentEntry) -> None:
        entry.environment_id = environment.id
        now = utcnow()
        if entry.created_at is None:
            entry.created_at = now
        entry.updated_at = now

    # ------------------------------------------------------------------
    # Secrets and values
    # ------------------------------------------------------------------

    def _entries(self, environment: Environment, kind: type) -> list[EnvironmentEntry]:
        return environment.secrets if kind is EnvironmentSecret else environment.values

    def _validate_entry(
        self, environment: Environment, entry: EnvironmentEntry,
    ) -> None:
        if not entry.name:
            raise InvalidRecordError("name", "cannot be blank")
        for other in self._entries(environment, type(entry)):
            if other.name == entry.name and other.id != entry.id:
                raise InvalidRecordError("name", "is already taken")

    def show_entry(
        self, project: Project, environment_name: str, kind: type, name: str,
    ) -> EnvironmentEntry:
        """Load a single secret or value, decrypted.

        Args:
            kind: ``EnvironmentSecret`` or ``EnvironmentValue``.
            name: Entry id or name.
        """
        _, _, not_found = _CHILDREN[kind]
        environment = self.show(project, environment_name)
        for entry in self._entries(environment, kind):
            if name in (entry.id, entry.name):
                return entry
        raise not_found(name)

    def save_entry(
        self, project: Project, environment_name: str, entry: EnvironmentEntry,
    ) -> EnvironmentEntry:
        """Create or update a single secret or value.

        The entry is serialized on a copy right before it is written.
        """
        table_name, event_type, _ = _CHILDREN[type(entry)]
        environment = self.show(project, environment_name)
        self._validate_entry(environment, entry)
        self._check_owner(environment, entry)
        table = self.client.table(table_name)
        action = EventAction.UPDATE if entry.id in table else EventAction.CREATE
        self._prepare_entry(environment, entry)
        sealed = self.client.seal_copy(entry)
        table.put(sealed.id, sealed.to_row())
        self.client.record_event(
            event_type, action, entry.id, entry.name, project,
            attrs={
                "environment_id": environment.id,
                "environment_display": environment.name,
            },
        )
        logger.debug("Saved %s %s", table_name, entry.id)
        return self.show_entry(project, environment.id, type(entry), entry.id)

    def delete_entry(
        self, project: Project, environment_name: str, kind: type, name: str,
    ) -> None:
        table_name, event_type, _ = _CHILDREN[kind]
        environment = self.show(project, environment_name)
        entry = self.show_entry(project, environment.id, kind, name)
        self.client.table(table_name).remove(entry.id)
        self.client.record_event(
            event_type, EventAction.DELETE, entry.id, entry.name, project,
            attrs={
                "environment_id": environment.id,
                "environment_display": environment.name,
            },
        )
        logger.debug("Deleted %s %s", table_name, entry.id)
