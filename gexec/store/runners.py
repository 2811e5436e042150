"""Runners store.

Runners are either bound to a project or global (``project_id`` unset).
"""
from __future__ import annotations

import logging
from typing import Optional

from ..exceptions import InvalidRecordError, RunnerNotFoundError
from ..models import EventAction, EventType, Project, Runner, new_id, slugify
from .base import Client, utcnow

logger = logging.getLogger("gexec.store")


class Runners:
    def __init__(self, client: Client):
        self.client = client

    @property
    def table(self):
        return self.client.table("runners")

    def _scope(self, project: Optional[Project]) -> Optional[str]:
        return project.id if project else None

    def _find(self, project: Optional[Project], name: str) -> Optional[dict]:
        scope = self._scope(project)
        return self.table.first(
            lambda row: row.get("project_id") == scope
            and name in (row["id"], row["slug"])
        )

    def _validate(self, record: Runner) -> None:
        if not 3 <= len(record.name) <= 255:
            raise InvalidRecordError("name", "the length must be between 3 and 255")
        for column in ("slug", "name"):
            value = getattr(record, column)
            if any(
                row[column] == value and row["id"] != record.id
                for row in self.table.select(project_id=record.project_id)
            ):
                raise InvalidRecordError(column, "is already taken")

    def _slugify(self, record: Runner) -> str:
        base = slugify(record.name) or record.id
        slug = base
        while any(
            row["slug"] == slug and row["id"] != record.id
            for row in self.table.select(project_id=record.project_id)
        ):
            slug = slugify(f"{base}-{new_id()[:6]}")
        return slug

    def list(self, project: Optional[Project] = None) -> list[Runner]:
        """List runners of a project, or the global runners without project."""
        records = [
            Runner.from_row(row)
            for row in self.table.select(project_id=self._scope(project))
        ]
        records.sort(key=lambda r: r.name)
        for record in records:
            self.client.open(record)
        return records

    def show(self, name: str, project: Optional[Project] = None) -> Runner:
        row = self._find(project, name)
        if row is None:
            raise RunnerNotFoundError(name)
        return self.client.open(Runner.from_row(row))

    def create(self, record: Runner, project: Optional[Project] = None) -> Runner:
        record.project_id = self._scope(project)
        if not record.slug:
            record.slug = self._slugify(record)
        self._validate(record)
        record.created_at = record.updated_at = utcnow()
        sealed = self.client.seal_copy(record)
        self.table.put(sealed.id, sealed.to_row())
        self.client.record_event(
            EventType.RUNNER, EventAction.CREATE, record.id, record.name, project,
        )
        logger.debug("Created runner %s", record.id)
        return self.show(record.id, project)

    def update(self, record: Runner, project: Optional[Project] = None) -> Runner:
        if self._find(project, record.id) is None:
            raise RunnerNotFoundError(record.id)
        record.project_id = self._scope(project)
        if not record.slug:
            record.slug = self._slugify(record)
        self._validate(record)
        record.updated_at = utcnow()
        sealed = self.client.seal_copy(record)
        self.table.put(sealed.id, sealed.to_row())
        self.client.record_event(
            EventType.RUNNER, EventAction.UPDATE, record.id, record.name, project,
        )
        logger.debug("Updated runner %s", record.id)
        return self.show(record.id, project)

    def delete(self, name: str, project: Optional[Project] = None) -> None:
        row = self._find(project, name)
        if row is None:
            raise RunnerNotFoundError(name)
        self.table.remove(row["id"])
        self.client.record_event(
            EventType.RUNNER, EventAction.DELETE, row["id"], row["name"], project,
        )
        logger.debug("Deleted runner %s", row["id"])
