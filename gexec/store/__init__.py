"""
GExec Store: In-memory reference of the persistence contract.

Every resource holding secret material serializes right before a row is
written and deserializes right after rows are read, callers only ever see
plaintext while the tables only ever hold ciphertext.
"""
from __future__ import annotations

from typing import Optional

from ..models import Event, User
from .base import Client, Table
from .credentials import Credentials
from .environments import Environments
from .projects import Projects
from .runners import Runners
from .templates import Inventories, Repositories, Templates
from .users import Groups, Teams, Users


class Store:
    """Entry point bundling all resource stores around one client."""

    def __init__(self, passphrase: str, principal: Optional[User] = None):
        self.client = Client(passphrase, principal)
        self.projects = Projects(self.client)
        self.users = Users(self.client)
        self.teams = Teams(self.client)
        self.groups = Groups(self.client)
        self.credentials = Credentials(self.client)
        self.repositories = Repositories(self.client)
        self.inventories = Inventories(self.client)
        self.environments = Environments(self.client)
        self.templates = Templates(self.client)
        self.runners = Runners(self.client)

    @property
    def passphrase(self) -> str:
        return self.client.passphrase

    def act_as(self, principal: Optional[User]) -> None:
        """Set the principal recorded on audit events."""
        self.client.principal = principal

    def events(self, project_id: Optional[str] = None) -> list[Event]:
        """List audit events, optionally for a single project."""
        table = self.client.table("events")
        rows = table.select(project_id=project_id) if project_id else table.select()
        return [Event.from_row(row) for row in rows]


__all__ = [
    "Store",
    "Client",
    "Table",
    "Projects",
    "Users",
    "Teams",
    "Groups",
    "Credentials",
    "Repositories",
    "Inventories",
    "Environments",
    "Templates",
    "Runners",
]
