"""Projects, collaborators and the grant edges between them.

A project is reachable through three parallel grant relations: direct
user grants, team grants and group grants. Teams and groups share the
exact same shape (``Membership`` to reach them, ``ProjectGrant`` to reach
the project).
"""
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional

from pydantic import Field

from .base import Model, Record


class Perm(str, Enum):
    """Permission level carried by a grant edge."""

    USER = "user"
    ADMIN = "admin"
    OWNER = "owner"


class Project(Record):
    slug: str = ""
    name: str = ""


class ProjectGrant(Model):
    """Edge granting a permission level on a project."""

    project_id: str
    perm: Perm = Perm.USER
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    subject_field: ClassVar[str] = ""

    @property
    def subject_id(self) -> str:
        return getattr(self, self.subject_field)


class UserProject(ProjectGrant):
    user_id: str

    subject_field: ClassVar[str] = "user_id"


class TeamProject(ProjectGrant):
    team_id: str

    subject_field: ClassVar[str] = "team_id"


class GroupProject(ProjectGrant):
    group_id: str

    subject_field: ClassVar[str] = "group_id"


class Team(Record):
    slug: str = ""
    name: str = ""
    projects: list[TeamProject] = Field(default_factory=list)

    relations: ClassVar[tuple[str, ...]] = ("projects",)


class Group(Record):
    slug: str = ""
    name: str = ""
    projects: list[GroupProject] = Field(default_factory=list)

    relations: ClassVar[tuple[str, ...]] = ("projects",)


class Membership(Model):
    """Edge making a user a member of a team or group."""

    user_id: str
    perm: Perm = Perm.USER
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    subject_field: ClassVar[str] = ""

    @property
    def subject_id(self) -> str:
        return getattr(self, self.subject_field)


class UserTeam(Membership):
    team_id: str
    team: Optional[Team] = None

    subject_field: ClassVar[str] = "team_id"
    relations: ClassVar[tuple[str, ...]] = ("team",)


class UserGroup(Membership):
    group_id: str
    group: Optional[Group] = None

    subject_field: ClassVar[str] = "group_id"
    relations: ClassVar[tuple[str, ...]] = ("group",)


class User(Record):
    """User account.

    Loaded as a principal it carries its direct project grants and its
    team and group memberships, each with that team's or group's project
    grants. ``admin`` bypasses every grant check.
    """

    username: str = ""
    email: str = ""
    admin: bool = False
    projects: list[UserProject] = Field(default_factory=list)
    teams: list[UserTeam] = Field(default_factory=list)
    groups: list[UserGroup] = Field(default_factory=list)

    relations: ClassVar[tuple[str, ...]] = ("projects", "teams", "groups")
