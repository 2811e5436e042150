"""
Vault Configuration: Passphrase loading and validated settings.

Reads the encryption passphrase from the environment:
    GEXEC_ENCRYPT_PASSPHRASE = <16, 24 or 32 byte passphrase>
                             | file:///path/to/passphrase

Security Note:
    Never log the passphrase. Only log its source and length.
"""
import os
import secrets
import logging
from pathlib import Path

from pydantic import BaseModel, ValidationError, field_validator

from ..exceptions import ConfigurationError
from .crypto import KEY_LENGTHS

logger = logging.getLogger("gexec.vault")

PASSPHRASE_ENV = "GEXEC_ENCRYPT_PASSPHRASE"
_FILE_PREFIX = "file://"


def resolve_value(value: str) -> str:
    """Resolve a configuration value, reading ``file://`` references.

    Trailing newlines of referenced files are stripped.

    Raises:
        ConfigurationError: If the referenced file cannot be read.
    """
    if not value.startswith(_FILE_PREFIX):
        return value
    path = Path(value[len(_FILE_PREFIX):])
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as err:
        raise ConfigurationError(f"failed to read {path}: {err}") from err
    logger.debug("Loaded configuration value from %s", path)
    return content.rstrip("\r\n")


def load_passphrase() -> str:
    """Load the encryption passphrase from GEXEC_ENCRYPT_PASSPHRASE.

    Returns:
        The resolved passphrase.

    Raises:
        ConfigurationError: If the variable is unset or empty.
    """
    raw = os.environ.get(PASSPHRASE_ENV)
    if not raw:
        raise ConfigurationError(
            f"{PASSPHRASE_ENV} environment variable is not set"
        )
    return resolve_value(raw)


def generate_passphrase() -> str:
    """Generate a random 32 character passphrase (AES-256).

    This is a utility for operators to generate new passphrases.
    """
    return secrets.token_hex(16)


class EncryptConfig(BaseModel):
    """Validated encryption configuration."""

    passphrase: str

    @field_validator("passphrase")
    @classmethod
    def validate_passphrase(cls, v: str) -> str:
        """Passphrase is used as raw AES key, enforce a valid key size."""
        size = len(v.encode("utf-8"))
        if size not in KEY_LENGTHS:
            raise ValueError(
                f"passphrase must be 16, 24 or 32 bytes, got {size}"
            )
        return v

    def __repr__(self) -> str:
        return f"EncryptConfig(passphrase=<{len(self.passphrase)} chars>)"

    __str__ = __repr__

    @classmethod
    def create(cls, passphrase: str) -> "EncryptConfig":
        """Validate a passphrase, turning failures into ConfigurationError."""
        try:
            return cls(passphrase=passphrase)
        except ValidationError as err:
            raise ConfigurationError(
                f"invalid encryption configuration: {err.errors()[0]['msg']}"
            ) from err

    @classmethod
    def from_env(cls) -> "EncryptConfig":
        """Create EncryptConfig by loading the passphrase from environment.

        Raises:
            ConfigurationError: If the passphrase is missing or has an
                invalid length. Meant to abort process startup.
        """
        config = cls.create(load_passphrase())
        logger.info(
            "Encryption configured with AES-%d",
            len(config.passphrase.encode("utf-8")) * 8,
        )
        return config
