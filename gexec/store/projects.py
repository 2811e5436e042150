"""
Projects store and the Grant Store.

A project is reachable through three grant relations, each edge keyed by
``(subject_id, project_id)`` and carrying a ``Perm``:

- ``user_projects``  (User → Project)
- ``team_projects``  (Team → Project)
- ``group_projects`` (Group → Project)

Every mutation resolves both endpoints first, then checks the edge:
attach requires it to be absent, permit and drop require it to exist.
"""
from __future__ import annotations

import logging
from typing import Any, NamedTuple, Optional

from ..exceptions import (
    AlreadyAssignedError,
    GroupNotFoundError,
    InvalidRecordError,
    NotAssignedError,
    NotFoundError,
    ProjectNotFoundError,
    TeamNotFoundError,
    UserNotFoundError,
)
from ..models import (
    EventAction,
    EventType,
    GroupProject,
    Perm,
    Project,
    ProjectGrant,
    TeamProject,
    UserProject,
    new_id,
    slugify,
)
from .base import Client, utcnow

logger = logging.getLogger("gexec.store")


class GrantRelation(NamedTuple):
    """Description of one subject → project grant relation."""

    table: str
    subject_table: str
    subject_column: str
    display_column: str
    lookup_columns: tuple[str, ...]
    model: type[ProjectGrant]
    event_type: EventType
    not_found: type[NotFoundError]


USER_GRANTS = GrantRelation(
    "user_projects", "users", "user_id", "username", ("username", "email"),
    UserProject, EventType.PROJECT_USER, UserNotFoundError,
)
TEAM_GRANTS = GrantRelation(
    "team_projects", "teams", "team_id", "name", ("slug",),
    TeamProject, EventType.PROJECT_TEAM, TeamNotFoundError,
)
GROUP_GRANTS = GrantRelation(
    "group_projects", "groups", "group_id", "name", ("slug",),
    GroupProject, EventType.PROJECT_GROUP, GroupNotFoundError,
)


def validate_perm(perm: Any) -> Perm:
    """Return the permission level or raise InvalidRecordError."""
    try:
        return Perm(perm)
    except ValueError:
        raise InvalidRecordError("perm", "invalid permission value") from None


def find_row(
    client: Client, table: str, name: str, columns: tuple[str, ...],
) -> Optional[dict[str, Any]]:
    """Find a row by id or any of the given unique columns."""
    return client.table(table).first(
        lambda row: row["id"] == name or any(row.get(c) == name for c in columns)
    )


class Projects:
    def __init__(self, client: Client):
        self.client = client

    @property
    def table(self):
        return self.client.table("projects")

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _row(self, name: str) -> dict[str, Any]:
        row = find_row(self.client, "projects", name, ("slug",))
        if row is None:
            raise ProjectNotFoundError(name)
        return row

    def _validate(self, record: Project) -> None:
        for column in ("slug", "name"):
            value = getattr(record, column)
            if not 3 <= len(value) <= 255:
                raise InvalidRecordError(column, "the length must be between 3 and 255")
        if self.table.first(
            lambda row: row["slug"] == record.slug and row["id"] != record.id
        ):
            raise InvalidRecordError("slug", "is already taken")

    def _slugify(self, record: Project) -> str:
        base = slugify(record.name) or record.id
        slug = base
        while self.table.first(lambda row: row["slug"] == slug and row["id"] != record.id):
            slug = slugify(f"{base}-{new_id()[:6]}")
        return slug

    def list(self) -> list[Project]:
        return sorted(
            (Project.from_row(row) for row in self.table.select()),
            key=lambda p: p.name,
        )

    def show(self, name: str) -> Project:
        """Load a project by id or slug."""
        return Project.from_row(self._row(name))

    def create(self, record: Project, owner: Optional[str] = None) -> Project:
        """Create a project, optionally granting ``owner`` to a user."""
        if not record.slug:
            record.slug = self._slugify(record)
        self._validate(record)
        owner_row = None
        if owner is not None:
            owner_row = find_row(
                self.client, USER_GRANTS.subject_table, owner, USER_GRANTS.lookup_columns,
            )
            if owner_row is None:
                raise UserNotFoundError(owner)
        record.created_at = record.updated_at = utcnow()
        self.table.put(record.id, record.to_row())
        self.client.record_event(
            EventType.PROJECT, EventAction.CREATE, record.id, record.name, record,
        )
        if owner_row is not None:
            self._attach(USER_GRANTS, record.id, owner_row["id"], Perm.OWNER)
        logger.debug("Created project %s", record.id)
        return self.show(record.id)

    def update(self, record: Project) -> Project:
        self._row(record.id)
        if not record.slug:
            record.slug = self._slugify(record)
        self._validate(record)
        record.updated_at = utcnow()
        self.table.put(record.id, record.to_row())
        self.client.record_event(
            EventType.PROJECT, EventAction.UPDATE, record.id, record.name, record,
        )
        logger.debug("Updated project %s", record.id)
        return self.show(record.id)

    def delete(self, name: str) -> None:
        """Delete a project with its grants and every resource it owns."""
        project = self.show(name)
        self.table.remove(project.id)
        for relation in (USER_GRANTS, TEAM_GRANTS, GROUP_GRANTS):
            self.client.table(relation.table).delete_where(project_id=project.id)
        self._drop_resources(project.id)
        self.client.record_event(
            EventType.PROJECT, EventAction.DELETE, project.id, project.name, project,
        )
        logger.debug("Deleted project %s", project.id)

    def _drop_resources(self, project_id: str) -> None:
        tables = self.client.tables
        for row in tables["environments"].select(project_id=project_id):
            tables["environment_secrets"].delete_where(environment_id=row["id"])
            tables["environment_values"].delete_where(environment_id=row["id"])
        for row in tables["templates"].select(project_id=project_id):
            for survey in tables["template_surveys"].select(template_id=row["id"]):
                tables["template_values"].delete_where(survey_id=survey["id"])
            tables["template_surveys"].delete_where(template_id=row["id"])
            tables["template_vaults"].delete_where(template_id=row["id"])
        for name in (
            "templates", "environments", "inventories",
            "repositories", "credentials", "runners",
        ):
            tables[name].delete_where(project_id=project_id)

    # ------------------------------------------------------------------
    # Grants
    # ------------------------------------------------------------------

    def _endpoints(
        self, relation: GrantRelation, project_name: str, subject_name: str,
    ) -> tuple[Project, dict[str, Any]]:
        project = self.show(project_name)
        subject = find_row(
            self.client, relation.subject_table, subject_name,
            relation.lookup_columns,
        )
        if subject is None:
            raise relation.not_found(subject_name)
        return project, subject

    def _event_attrs(
        self, relation: GrantRelation, subject: dict[str, Any], perm: Optional[Perm] = None,
    ) -> dict[str, Any]:
        prefix = relation.subject_column[:-len("_id")]
        attrs = {
            relation.subject_column: subject["id"],
            f"{prefix}_display": subject[relation.display_column],
        }
        if perm is not None:
            attrs["perm"] = perm.value
        return attrs

    def _list(self, relation: GrantRelation, project_name: str) -> list[ProjectGrant]:
        project = self.show(project_name)
        return [
            relation.model.from_row(row)
            for row in self.client.table(relation.table).select(project_id=project.id)
        ]

    def _attach(
        self, relation: GrantRelation, project_name: str, subject_name: str, perm: Any,
    ) -> None:
        project, subject = self._endpoints(relation, project_name, subject_name)
        table = self.client.table(relation.table)
        key = (subject["id"], project.id)
        if key in table:
            raise AlreadyAssignedError()
        perm = validate_perm(perm)
        now = utcnow()
        edge = relation.model(
            **{relation.subject_column: subject["id"]},
            project_id=project.id, perm=perm, created_at=now, updated_at=now,
        )
        table.put(key, edge.to_row())
        self.client.record_event(
            relation.event_type, EventAction.CREATE, project.id, project.name,
            project, attrs=self._event_attrs(relation, subject, perm),
        )
        logger.debug(
            "Attached %s %s to project %s as %s",
            relation.subject_column, subject["id"], project.id, perm.value,
        )

    def _permit(
        self, relation: GrantRelation, project_name: str, subject_name: str, perm: Any,
    ) -> None:
        project, subject = self._endpoints(relation, project_name, subject_name)
        table = self.client.table(relation.table)
        key = (subject["id"], project.id)
        row = table.get(key)
        if row is None:
            raise NotAssignedError()
        perm = validate_perm(perm)
        row.update(perm=perm, updated_at=utcnow())
        table.put(key, row)
        self.client.record_event(
            relation.event_type, EventAction.UPDATE, project.id, project.name,
            project, attrs=self._event_attrs(relation, subject, perm),
        )
        logger.debug(
            "Permitted %s %s on project %s as %s",
            relation.subject_column, subject["id"], project.id, perm.value,
        )

    def _drop(
        self, relation: GrantRelation, project_name: str, subject_name: str,
    ) -> None:
        project, subject = self._endpoints(relation, project_name, subject_name)
        table = self.client.table(relation.table)
        key = (subject["id"], project.id)
        if key not in table:
            raise NotAssignedError()
        table.remove(key)
        self.client.record_event(
            relation.event_type, EventAction.DELETE, project.id, project.name,
            project, attrs=self._event_attrs(relation, subject),
        )
        logger.debug(
            "Dropped %s %s from project %s",
            relation.subject_column, subject["id"], project.id,
        )

    def list_users(self, project: str) -> list[UserProject]:
        return self._list(USER_GRANTS, project)

    def attach_user(self, project: str, user: str, perm: Any = Perm.USER) -> None:
        self._attach(USER_GRANTS, project, user, perm)

    def permit_user(self, project: str, user: str, perm: Any) -> None:
        self._permit(USER_GRANTS, project, user, perm)

    def drop_user(self, project: str, user: str) -> None:
        self._drop(USER_GRANTS, project, user)

    def list_teams(self, project: str) -> list[TeamProject]:
        return self._list(TEAM_GRANTS, project)

    def attach_team(self, project: str, team: str, perm: Any = Perm.USER) -> None:
        self._attach(TEAM_GRANTS, project, team, perm)

    def permit_team(self, project: str, team: str, perm: Any) -> None:
        self._permit(TEAM_GRANTS, project, team, perm)

    def drop_team(self, project: str, team: str) -> None:
        self._drop(TEAM_GRANTS, project, team)

    def list_groups(self, project: str) -> list[GroupProject]:
        return self._list(GROUP_GRANTS, project)

    def attach_group(self, project: str, group: str, perm: Any = Perm.USER) -> None:
        self._attach(GROUP_GRANTS, project, group, perm)

    def permit_group(self, project: str, group: str, perm: Any) -> None:
        self._permit(GROUP_GRANTS, project, group, perm)

    def drop_group(self, project: str, group: str) -> None:
        self._drop(GROUP_GRANTS, project, group)
