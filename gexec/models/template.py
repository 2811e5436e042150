"""Template models and the entities a template references.

None of these types owns a secret field. They sit in the secret cascade
because they reference credentials and environments that do.
"""
from typing import ClassVar, Iterator, Optional

from pydantic import Field

from .base import SecretCarrier, SecretRecord
from .credential import Credential
from .environment import Environment


class Repository(SecretRecord):
    project_id: str = ""
    credential_id: Optional[str] = None
    credential: Optional[Credential] = None
    slug: str = ""
    name: str = ""
    url: str = ""
    branch: str = ""

    relations: ClassVar[tuple[str, ...]] = ("credential",)

    def related(self) -> Iterator[Optional[SecretCarrier]]:
        yield self.credential


class Inventory(SecretRecord):
    """Inventory with an auth credential and a privilege escalation one."""

    project_id: str = ""
    repository_id: Optional[str] = None
    repository: Optional[Repository] = None
    credential_id: Optional[str] = None
    credential: Optional[Credential] = None
    become_id: Optional[str] = None
    become: Optional[Credential] = None
    slug: str = ""
    name: str = ""
    kind: str = ""
    content: str = ""

    relations: ClassVar[tuple[str, ...]] = ("repository", "credential", "become")

    def related(self) -> Iterator[Optional[SecretCarrier]]:
        yield self.repository
        yield self.credential
        yield self.become


class TemplateValue(SecretRecord):
    survey_id: str = ""
    name: str = ""
    value: str = ""


class TemplateSurvey(SecretRecord):
    template_id: str = ""
    name: str = ""
    title: str = ""
    description: str = ""
    kind: str = ""
    required: bool = False
    values: list[TemplateValue] = Field(default_factory=list)

    relations: ClassVar[tuple[str, ...]] = ("values",)

    def related(self) -> Iterator[SecretCarrier]:
        yield from self.values


class TemplateVault(SecretRecord):
    """Vault password source for a template, ``script`` is not a secret."""

    template_id: str = ""
    credential_id: Optional[str] = None
    credential: Optional[Credential] = None
    name: str = ""
    kind: str = ""
    script: str = ""

    relations: ClassVar[tuple[str, ...]] = ("credential",)

    def related(self) -> Iterator[Optional[SecretCarrier]]:
        yield self.credential


class Template(SecretRecord):
    project_id: str = ""
    repository_id: Optional[str] = None
    repository: Optional[Repository] = None
    inventory_id: Optional[str] = None
    inventory: Optional[Inventory] = None
    environment_id: Optional[str] = None
    environment: Optional[Environment] = None
    slug: str = ""
    name: str = ""
    description: str = ""
    path: str = ""
    arguments: str = ""
    limit: str = ""
    executor: str = ""
    branch: str = ""
    override: bool = False
    surveys: list[TemplateSurvey] = Field(default_factory=list)
    vaults: list[TemplateVault] = Field(default_factory=list)

    relations: ClassVar[tuple[str, ...]] = (
        "repository", "inventory", "environment", "surveys", "vaults",
    )

    def related(self) -> Iterator[Optional[SecretCarrier]]:
        yield self.repository
        yield self.inventory
        yield self.environment
        yield from self.surveys
        yield from self.vaults
