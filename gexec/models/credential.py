"""Credential models.

A credential is one of three kinds. Only the variant matching ``kind``
exists in memory; switching kind replaces the variant, so stale secrets of
a previous kind cannot survive an update. The persisted row still carries
both ``shell_*`` and ``login_*`` columns, the inactive ones stored empty.
"""
from typing import Annotated, Any, ClassVar, Literal, Optional, Union

from pydantic import Field

from .base import SecretCarrier, SecretRecord

CREDENTIAL_KINDS = ("empty", "shell", "login")


class CredentialEmpty(SecretCarrier):
    """Credential without any secret material."""

    kind: Literal["empty"] = "empty"


class CredentialShell(SecretCarrier):
    """Credentials for shells (ssh)."""

    kind: Literal["shell"] = "shell"
    username: str = ""
    password: str = ""
    private_key: str = ""

    secret_fields: ClassVar[tuple[str, ...]] = ("password", "private_key")


class CredentialLogin(SecretCarrier):
    """Credentials for logins."""

    kind: Literal["login"] = "login"
    username: str = ""
    password: str = ""

    secret_fields: ClassVar[tuple[str, ...]] = ("password",)


CredentialSecret = Annotated[
    Union[CredentialEmpty, CredentialShell, CredentialLogin],
    Field(discriminator="kind"),
]


class Credential(SecretRecord):
    """Credential stored within a project."""

    project_id: str = ""
    slug: str = ""
    name: str = ""
    override: bool = False
    secret: CredentialSecret = Field(default_factory=CredentialEmpty)

    @property
    def kind(self) -> str:
        return self.secret.kind

    @property
    def shell(self) -> Optional[CredentialShell]:
        return self.secret if isinstance(self.secret, CredentialShell) else None

    @property
    def login(self) -> Optional[CredentialLogin]:
        return self.secret if isinstance(self.secret, CredentialLogin) else None

    @property
    def sealed(self) -> bool:
        return self.secret.sealed

    def mark_sealed(self) -> None:
        self.secret.mark_sealed()

    def seal(self, passphrase: str) -> None:
        """Encrypt the active variant, ``empty`` has nothing to encrypt."""
        self.secret.seal(passphrase)

    def unseal(self, passphrase: str) -> None:
        self.secret.unseal(passphrase)

    def to_row(self) -> dict[str, Any]:
        row = self.model_dump(exclude={"secret"})
        shell = self.shell or CredentialShell()
        login = self.login or CredentialLogin()
        row.update(
            kind=self.kind,
            shell_username=shell.username,
            shell_password=shell.password,
            shell_private_key=shell.private_key,
            login_username=login.username,
            login_password=login.password,
        )
        return row

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Credential":
        kind = row.get("kind", "empty")
        if kind == "shell":
            secret = CredentialShell(
                username=row.get("shell_username", ""),
                password=row.get("shell_password", ""),
                private_key=row.get("shell_private_key", ""),
            )
        elif kind == "login":
            secret = CredentialLogin(
                username=row.get("login_username", ""),
                password=row.get("login_password", ""),
            )
        else:
            secret = CredentialEmpty()
        fields = {
            key: value for key, value in row.items()
            if key in cls.model_fields
        }
        record = cls.model_validate({**fields, "secret": secret})
        record.mark_sealed()
        return record
