"""
Model base classes shared by every gexec entity.

``SecretCarrier`` entities own zero or more secret string fields. The
carrier only ever touches its *own* fields in ``seal``/``unseal``; related
entities are reached through ``related()`` and handled by the cascading
walker in ``gexec.vault.cascade``.
"""
import re
import string
import secrets
from datetime import datetime
from typing import Any, ClassVar, Iterator, Optional

import orjson
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from ..exceptions import AlreadySealedError
from ..vault import cascade
from ..vault.crypto import decrypt_secret, encrypt_secret

ID_LENGTH = 20
_ID_ALPHABET = string.ascii_lowercase + string.digits
_SLUG_STRIP = re.compile(r"[^\w\s-]")
_SLUG_DASH = re.compile(r"[-\s_]+")


def new_id() -> str:
    """Generate a random lowercase record id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(ID_LENGTH))


def slugify(value: str) -> str:
    """Turn a display name into a url-safe slug."""
    value = _SLUG_STRIP.sub("", value.strip().lower())
    return _SLUG_DASH.sub("-", value).strip("-")


class Model(BaseModel):
    """Base model with row conversion and JSON encoding."""

    model_config = ConfigDict(extra="ignore")

    # Attributes holding loaded related entities, never persisted.
    relations: ClassVar[tuple[str, ...]] = ()

    def to_row(self) -> dict[str, Any]:
        """Return the persisted column layout of this record."""
        return self.model_dump(exclude=set(self.relations))

    @classmethod
    def from_row(cls, row: dict[str, Any]):
        """Build a record from its persisted column layout."""
        return cls.model_validate(row)

    def dumps(self) -> bytes:
        """Encode the record and its loaded relations as JSON."""
        return orjson.dumps(self.model_dump(mode="json"))


class Record(Model):
    """Model identified by a generated id with timestamps."""

    id: str = Field(default_factory=new_id)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SecretCarrier(Model):
    """Entity owning secret fields.

    Tracks whether its secret fields currently hold ciphertext. ``seal``
    refuses to run twice without an ``unseal`` in between, re-encrypting
    ciphertext would make the original secret unrecoverable.
    """

    secret_fields: ClassVar[tuple[str, ...]] = ()

    _sealed: bool = PrivateAttr(default=False)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def mark_sealed(self) -> None:
        """Flag the secret fields as holding stored ciphertext."""
        self._sealed = True

    def related(self) -> Iterator["SecretCarrier"]:
        """Yield loaded related carriers, ``None`` for unloaded ones."""
        return iter(())

    def seal(self, passphrase: str) -> None:
        """Encrypt the carrier's own secret fields in place.

        Raises:
            AlreadySealedError: If the fields already hold ciphertext.
        """
        if self._sealed:
            raise AlreadySealedError(
                f"{type(self).__name__} secrets are already serialized"
            )
        encrypted = {
            name: encrypt_secret(getattr(self, name), passphrase)
            for name in self.secret_fields
        }
        for name, value in encrypted.items():
            setattr(self, name, value)
        self._sealed = True

    def unseal(self, passphrase: str) -> None:
        """Decrypt the carrier's own secret fields in place.

        Fields are only replaced once all of them decrypted successfully.
        """
        decrypted = {
            name: decrypt_secret(getattr(self, name), passphrase)
            for name in self.secret_fields
        }
        for name, value in decrypted.items():
            setattr(self, name, value)
        self._sealed = False

    def serialize_secret(self, passphrase: str) -> None:
        """Encrypt this entity and every loaded related entity."""
        cascade.serialize(self, passphrase)

    def deserialize_secret(self, passphrase: str) -> None:
        """Decrypt this entity and every loaded related entity."""
        cascade.deserialize(self, passphrase)

    @classmethod
    def from_row(cls, row: dict[str, Any]):
        record = super().from_row(row)
        record.mark_sealed()
        return record


class SecretRecord(Record, SecretCarrier):
    """Persisted entity in the secret cascade."""
