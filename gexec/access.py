"""
Access Resolver: decide whether a principal may act on a project.

The decision is a pure function of an already loaded principal (a ``User``
with its grants and memberships) and an already loaded project. Grant
levels are collected along three paths:

- direct ``UserProject`` grants of the principal,
- ``TeamProject`` grants of every team the principal belongs to,
- ``GroupProject`` grants of every group the principal belongs to.

Each capability accepts an explicit set of levels. This is a membership
test, not an ordinal comparison: ``admin`` satisfies MANAGE but not OWN.
"""
import logging
from enum import Enum
from typing import Optional

from .models import Perm, Project, Runner, User

logger = logging.getLogger("gexec.access")


class Capability(str, Enum):
    SHOW = "show"
    OWN = "own"
    MANAGE = "manage"


class Decision(str, Enum):
    """Outcome of an access check, truthy only when access is allowed."""

    ALLOW = "allow"
    DENY = "deny"

    def __bool__(self) -> bool:
        return self is Decision.ALLOW


AccessDenied = Decision.DENY

ACCEPTED_PERMS: dict[Capability, frozenset[Perm]] = {
    Capability.SHOW: frozenset({Perm.USER, Perm.ADMIN, Perm.OWNER}),
    Capability.OWN: frozenset({Perm.OWNER}),
    Capability.MANAGE: frozenset({Perm.ADMIN, Perm.OWNER}),
}


def reachable_perms(principal: User, project_id: str) -> set[Perm]:
    """Collect every grant level the principal holds on a project."""
    perms: set[Perm] = set()
    for grant in principal.projects:
        if grant.project_id == project_id:
            perms.add(Perm(grant.perm))
    for membership in principal.teams:
        if membership.team is None:
            continue
        for grant in membership.team.projects:
            if grant.project_id == project_id:
                perms.add(Perm(grant.perm))
    for membership in principal.groups:
        if membership.group is None:
            continue
        for grant in membership.group.projects:
            if grant.project_id == project_id:
                perms.add(Perm(grant.perm))
    return perms


def resolve(
    principal: Optional[User],
    project: Project,
    capability: Capability,
) -> Decision:
    """Decide if ``principal`` holds ``capability`` on ``project``.

    Global admins are allowed everything. Otherwise access is allowed
    when one of the reachable grant levels is accepted for the capability.
    """
    if principal is None:
        return Decision.DENY
    if principal.admin:
        return Decision.ALLOW
    perms = reachable_perms(principal, project.id)
    if perms & ACCEPTED_PERMS[capability]:
        return Decision.ALLOW
    logger.debug(
        "Denied %s on project %s for user %s (levels: %s)",
        capability.value, project.id, principal.id,
        sorted(p.value for p in perms),
    )
    return Decision.DENY


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def permit_create_project(principal: Optional[User]) -> Decision:
    """Any authenticated principal may create a project."""
    return Decision.ALLOW if principal is not None else Decision.DENY


def permit_show_project(principal: Optional[User], project: Project) -> Decision:
    return resolve(principal, project, Capability.SHOW)


def permit_manage_project(principal: Optional[User], project: Project) -> Decision:
    return resolve(principal, project, Capability.MANAGE)


def permit_own_project(principal: Optional[User], project: Project) -> Decision:
    return resolve(principal, project, Capability.OWN)


# ---------------------------------------------------------------------------
# Project scoped resources
# ---------------------------------------------------------------------------
# Credentials, repositories, inventories, environments and templates carry
# no grants of their own, they inherit the project decision.

permit_create_credential = permit_manage_project
permit_show_credential = permit_show_project
permit_manage_credential = permit_manage_project

permit_create_repository = permit_manage_project
permit_show_repository = permit_show_project
permit_manage_repository = permit_manage_project

permit_create_inventory = permit_manage_project
permit_show_inventory = permit_show_project
permit_manage_inventory = permit_manage_project

permit_create_environment = permit_manage_project
permit_show_environment = permit_show_project
permit_manage_environment = permit_manage_project

permit_create_template = permit_manage_project
permit_show_template = permit_show_project
permit_manage_template = permit_manage_project


# ---------------------------------------------------------------------------
# Runners
# ---------------------------------------------------------------------------

def _permit_runner(
    principal: Optional[User],
    runner: Runner,
    project: Optional[Project],
    capability: Capability,
) -> Decision:
    if principal is None:
        return Decision.DENY
    if runner.project_id is None:
        # global runners are managed by administrators only
        return Decision.ALLOW if principal.admin else Decision.DENY
    if project is None or project.id != runner.project_id:
        return Decision.DENY
    return resolve(principal, project, capability)


def permit_create_runner(
    principal: Optional[User],
    project: Optional[Project] = None,
) -> Decision:
    """Project runners need MANAGE, global runners an administrator."""
    runner = Runner(project_id=project.id if project else None)
    return _permit_runner(principal, runner, project, Capability.MANAGE)


def permit_show_runner(
    principal: Optional[User],
    runner: Runner,
    project: Optional[Project] = None,
) -> Decision:
    return _permit_runner(principal, runner, project, Capability.SHOW)


def permit_manage_runner(
    principal: Optional[User],
    runner: Runner,
    project: Optional[Project] = None,
) -> Decision:
    return _permit_runner(principal, runner, project, Capability.MANAGE)
