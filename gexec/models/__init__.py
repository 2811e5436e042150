"""GExec entity models."""

from .base import Model, Record, SecretCarrier, SecretRecord, new_id, slugify
from .credential import (
    CREDENTIAL_KINDS,
    Credential,
    CredentialEmpty,
    CredentialLogin,
    CredentialShell,
)
from .environment import Environment, EnvironmentSecret, EnvironmentValue
from .event import Event, EventAction, EventType
from .project import (
    Group,
    GroupProject,
    Membership,
    Perm,
    Project,
    ProjectGrant,
    Team,
    TeamProject,
    User,
    UserGroup,
    UserProject,
    UserTeam,
)
from .runner import Runner
from .template import (
    Inventory,
    Repository,
    Template,
    TemplateSurvey,
    TemplateValue,
    TemplateVault,
)

__all__ = [
    "Model",
    "Record",
    "SecretCarrier",
    "SecretRecord",
    "new_id",
    "slugify",
    "CREDENTIAL_KINDS",
    "Credential",
    "CredentialEmpty",
    "CredentialLogin",
    "CredentialShell",
    "Environment",
    "EnvironmentSecret",
    "EnvironmentValue",
    "Event",
    "EventAction",
    "EventType",
    "Group",
    "GroupProject",
    "Membership",
    "Perm",
    "Project",
    "ProjectGrant",
    "Team",
    "TeamProject",
    "User",
    "UserGroup",
    "UserProject",
    "UserTeam",
    "Runner",
    "Inventory",
    "Repository",
    "Template",
    "TemplateSurvey",
    "TemplateValue",
    "TemplateVault",
]
