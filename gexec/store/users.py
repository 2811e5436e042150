"""Users, teams and groups stores.

Teams and groups are two collectives with the same shape: members via
``user_teams`` / ``user_groups`` and project grants via ``team_projects`` /
``group_projects``. Both are implemented by ``Collectives``.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from ..exceptions import (
    AlreadyAssignedError,
    GroupNotFoundError,
    InvalidRecordError,
    NotAssignedError,
    NotFoundError,
    TeamNotFoundError,
    UserNotFoundError,
)
from ..models import (
    EventAction,
    EventType,
    Group,
    GroupProject,
    Membership,
    Perm,
    Record,
    Team,
    TeamProject,
    User,
    UserGroup,
    UserProject,
    UserTeam,
    new_id,
    slugify,
)
from .base import Client, utcnow
from .projects import find_row, validate_perm

logger = logging.getLogger("gexec.store")


class Users:
    def __init__(self, client: Client):
        self.client = client

    @property
    def table(self):
        return self.client.table("users")

    def _row(self, name: str) -> dict[str, Any]:
        row = find_row(self.client, "users", name, ("username", "email"))
        if row is None:
            raise UserNotFoundError(name)
        return row

    def _validate(self, record: User) -> None:
        if not 3 <= len(record.username) <= 255:
            raise InvalidRecordError("username", "the length must be between 3 and 255")
        for column in ("username", "email"):
            value = getattr(record, column)
            if value and self.table.first(
                lambda row: row[column] == value and row["id"] != record.id
            ):
                raise InvalidRecordError(column, "is already taken")

    def list(self) -> list[User]:
        return sorted(
            (User.from_row(row) for row in self.table.select()),
            key=lambda u: u.username,
        )

    def show(self, name: str) -> User:
        """Load a user by id, username or email, without grants."""
        return User.from_row(self._row(name))

    def create(self, record: User) -> User:
        self._validate(record)
        record.created_at = record.updated_at = utcnow()
        self.table.put(record.id, record.to_row())
        self.client.record_event(
            EventType.USER, EventAction.CREATE, record.id, record.username,
        )
        logger.debug("Created user %s", record.id)
        return self.show(record.id)

    def update(self, record: User) -> User:
        self._row(record.id)
        self._validate(record)
        record.updated_at = utcnow()
        self.table.put(record.id, record.to_row())
        self.client.record_event(
            EventType.USER, EventAction.UPDATE, record.id, record.username,
        )
        logger.debug("Updated user %s", record.id)
        return self.show(record.id)

    def delete(self, name: str) -> None:
        user = self.show(name)
        self.table.remove(user.id)
        for table in ("user_projects", "user_teams", "user_groups"):
            self.client.table(table).delete_where(user_id=user.id)
        self.client.record_event(
            EventType.USER, EventAction.DELETE, user.id, user.username,
        )
        logger.debug("Deleted user %s", user.id)

    def principal(self, name: str) -> User:
        """Load a user together with every grant reaching a project.

        The result is what the access resolver expects: direct project
        grants, team memberships with each team's project grants and group
        memberships with each group's project grants.
        """
        user = self.show(name)
        tables = self.client.tables
        user.projects = [
            UserProject.from_row(row)
            for row in tables["user_projects"].select(user_id=user.id)
        ]
        user.teams = []
        for row in tables["user_teams"].select(user_id=user.id):
            membership = UserTeam.from_row(row)
            team_row = tables["teams"].get(membership.team_id)
            if team_row is not None:
                membership.team = Team.from_row(team_row)
                membership.team.projects = [
                    TeamProject.from_row(r)
                    for r in tables["team_projects"].select(team_id=membership.team_id)
                ]
            user.teams.append(membership)
        user.groups = []
        for row in tables["user_groups"].select(user_id=user.id):
            membership = UserGroup.from_row(row)
            group_row = tables["groups"].get(membership.group_id)
            if group_row is not None:
                membership.group = Group.from_row(group_row)
                membership.group.projects = [
                    GroupProject.from_row(r)
                    for r in tables["group_projects"].select(group_id=membership.group_id)
                ]
            user.groups.append(membership)
        return user


class Collectives:
    """Named collection of users holding project grants."""

    table_name: str = ""
    member_table: str = ""
    grant_table: str = ""
    subject_column: str = ""
    model: type[Record] = Record
    membership: type[Membership] = Membership
    not_found: type[NotFoundError] = NotFoundError
    event_type: EventType
    member_event_type: EventType

    def __init__(self, client: Client):
        self.client = client

    @property
    def table(self):
        return self.client.table(self.table_name)

    def _row(self, name: str) -> dict[str, Any]:
        row = find_row(self.client, self.table_name, name, ("slug",))
        if row is None:
            raise self.not_found(name)
        return row

    def _validate(self, record) -> None:
        for column in ("slug", "name"):
            value = getattr(record, column)
            if not 3 <= len(value) <= 255:
                raise InvalidRecordError(column, "the length must be between 3 and 255")
            if self.table.first(
                lambda row: row[column] == value and row["id"] != record.id
            ):
                raise InvalidRecordError(column, "is already taken")

    def list(self) -> list:
        return sorted(
            (self.model.from_row(row) for row in self.table.select()),
            key=lambda r: r.name,
        )

    def show(self, name: str):
        return self.model.from_row(self._row(name))

    def create(self, record):
        if not record.slug:
            base = slugify(record.name) or record.id
            record.slug = base
            while self.table.first(lambda row: row["slug"] == record.slug):
                record.slug = slugify(f"{base}-{new_id()[:6]}")
        self._validate(record)
        record.created_at = record.updated_at = utcnow()
        self.table.put(record.id, record.to_row())
        self.client.record_event(
            self.event_type, EventAction.CREATE, record.id, record.name,
        )
        logger.debug("Created %s %s", self.table_name, record.id)
        return self.show(record.id)

    def delete(self, name: str) -> None:
        record = self.show(name)
        self.table.remove(record.id)
        criteria = {self.subject_column: record.id}
        self.client.table(self.member_table).delete_where(**criteria)
        self.client.table(self.grant_table).delete_where(**criteria)
        self.client.record_event(
            self.event_type, EventAction.DELETE, record.id, record.name,
        )
        logger.debug("Deleted %s %s", self.table_name, record.id)

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def _endpoints(self, name: str, user: str) -> tuple[Any, User]:
        record = self.show(name)
        row = find_row(self.client, "users", user, ("username", "email"))
        if row is None:
            raise UserNotFoundError(user)
        return record, User.from_row(row)

    def list_users(self, name: str) -> list[Membership]:
        record = self.show(name)
        return [
            self.membership.from_row(row)
            for row in self.client.table(self.member_table).select(
                **{self.subject_column: record.id}
            )
        ]

    def attach_user(self, name: str, user: str, perm: Any = Perm.USER) -> None:
        record, member = self._endpoints(name, user)
        table = self.client.table(self.member_table)
        key = (member.id, record.id)
        if key in table:
            raise AlreadyAssignedError()
        perm = validate_perm(perm)
        now = utcnow()
        edge = self.membership(
            **{self.subject_column: record.id},
            user_id=member.id, perm=perm, created_at=now, updated_at=now,
        )
        table.put(key, edge.to_row())
        self._member_event(EventAction.CREATE, record, member, perm)

    def permit_user(self, name: str, user: str, perm: Any) -> None:
        record, member = self._endpoints(name, user)
        table = self.client.table(self.member_table)
        key = (member.id, record.id)
        row = table.get(key)
        if row is None:
            raise NotAssignedError()
        perm = validate_perm(perm)
        row.update(perm=perm, updated_at=utcnow())
        table.put(key, row)
        self._member_event(EventAction.UPDATE, record, member, perm)

    def drop_user(self, name: str, user: str) -> None:
        record, member = self._endpoints(name, user)
        table = self.client.table(self.member_table)
        key = (member.id, record.id)
        if key not in table:
            raise NotAssignedError()
        table.remove(key)
        self._member_event(EventAction.DELETE, record, member)

    def _member_event(
        self, action: EventAction, record, member: User, perm: Optional[Perm] = None,
    ) -> None:
        attrs = {"user_id": member.id, "user_display": member.username}
        if perm is not None:
            attrs["perm"] = perm.value
        self.client.record_event(
            self.member_event_type, action, record.id, record.name, attrs=attrs,
        )
        logger.debug(
            "%s member %s of %s %s",
            action.value, member.id, self.table_name, record.id,
        )


class Teams(Collectives):
    table_name = "teams"
    member_table = "user_teams"
    grant_table = "team_projects"
    subject_column = "team_id"
    model = Team
    membership = UserTeam
    not_found = TeamNotFoundError
    event_type = EventType.TEAM
    member_event_type = EventType.USER_TEAM


class Groups(Collectives):
    table_name = "groups"
    member_table = "user_groups"
    grant_table = "group_projects"
    subject_column = "group_id"
    model = Group
    membership = UserGroup
    not_found = GroupNotFoundError
    event_type = EventType.GROUP
    member_event_type = EventType.USER_GROUP
