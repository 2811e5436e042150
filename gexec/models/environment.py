"""Environment models: an environment owns ordered secrets and values."""
from typing import ClassVar, Iterator

from pydantic import Field

from .base import SecretCarrier, SecretRecord


class EnvironmentSecret(SecretRecord):
    """Secret exposed to executions, content is encrypted."""

    environment_id: str = ""
    kind: str = ""
    name: str = ""
    content: str = ""

    secret_fields: ClassVar[tuple[str, ...]] = ("content",)


class EnvironmentValue(SecretRecord):
    """Plain environment value, content is encrypted all the same."""

    environment_id: str = ""
    kind: str = ""
    name: str = ""
    content: str = ""

    secret_fields: ClassVar[tuple[str, ...]] = ("content",)


class Environment(SecretRecord):
    project_id: str = ""
    slug: str = ""
    name: str = ""
    secrets: list[EnvironmentSecret] = Field(default_factory=list)
    values: list[EnvironmentValue] = Field(default_factory=list)

    relations: ClassVar[tuple[str, ...]] = ("secrets", "values")

    def related(self) -> Iterator[SecretCarrier]:
        yield from self.secrets
        yield from self.values
