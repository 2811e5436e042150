"""
Vault Crypto Core: Field-level AES-GCM envelope for stored secrets.

Every secret column is stored as:
    base64( nonce 12B | AES-GCM(plaintext) + tag 16B )

The AES key is the raw operator passphrase (16, 24 or 32 bytes selecting
AES-128/192/256). No key derivation is applied, existing rows depend on it.

Security Note:
    Never log plaintext, ciphertext or the passphrase.
    A fresh random nonce is drawn inside every field encryption, two
    plaintexts never share a nonce under the same key.
"""
import os
import base64
import binascii
import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import (
    ConfigurationError,
    MalformedCiphertextError,
    WrongPassphraseError,
)

logger = logging.getLogger("gexec.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
KEY_LENGTHS = (16, 24, 32)  # AES-128, AES-192, AES-256


# ---------------------------------------------------------------------------
# Key handling
# ---------------------------------------------------------------------------

def passphrase_key(passphrase: str) -> bytes:
    """Return the raw AES key bytes for a passphrase.

    Args:
        passphrase: Operator supplied passphrase.

    Returns:
        UTF-8 encoded passphrase.

    Raises:
        ConfigurationError: If the encoded passphrase is not 16, 24 or 32 bytes.
    """
    key = passphrase.encode("utf-8")
    if len(key) not in KEY_LENGTHS:
        raise ConfigurationError(
            f"encryption passphrase must be 16, 24 or 32 bytes, got {len(key)}"
        )
    return key


def prepare_cipher(passphrase: str) -> AESGCM:
    """Build the AEAD primitive for a passphrase."""
    return AESGCM(passphrase_key(passphrase))


def generate_nonce() -> bytes:
    """Draw a fresh nonce from the OS CSPRNG."""
    return os.urandom(NONCE_SIZE)


# ---------------------------------------------------------------------------
# Field encryption
# ---------------------------------------------------------------------------

def encrypt_secret(secret: str, passphrase: str) -> str:
    """Encrypt a single secret field.

    An empty string is returned unchanged, it is never sealed.

    Args:
        secret: Plaintext value.
        passphrase: Encryption passphrase.

    Returns:
        base64(nonce | ciphertext | tag), or ``""`` for an empty secret.
    """
    if secret == "":
        return ""
    cipher = prepare_cipher(passphrase)
    nonce = generate_nonce()
    sealed = cipher.encrypt(nonce, secret.encode("utf-8"), None)
    return base64.b64encode(nonce + sealed).decode("ascii")


def decrypt_secret(secret: str, passphrase: str) -> str:
    """Decrypt a single secret field.

    An empty string is returned unchanged, decryption is never attempted.

    Args:
        secret: Stored blob as produced by ``encrypt_secret``.
        passphrase: Encryption passphrase.

    Returns:
        Decrypted plaintext.

    Raises:
        MalformedCiphertextError: Invalid base64 or shorter than a nonce.
        WrongPassphraseError: Authentication failed (wrong passphrase,
            tampered or corrupted blob).
    """
    if secret == "":
        return ""
    cipher = prepare_cipher(passphrase)
    try:
        encrypted = base64.b64decode(secret, validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedCiphertextError(f"invalid base64 ciphertext: {err}") from err
    if len(encrypted) < NONCE_SIZE:
        raise MalformedCiphertextError(
            f"ciphertext too short: {len(encrypted)} bytes "
            f"(minimum {NONCE_SIZE})"
        )
    nonce = encrypted[:NONCE_SIZE]
    body = encrypted[NONCE_SIZE:]
    try:
        decrypted = cipher.decrypt(nonce, body, None)
    except InvalidTag as err:
        raise WrongPassphraseError() from err
    try:
        return decrypted.decode("utf-8")
    except UnicodeDecodeError as err:
        raise MalformedCiphertextError("decrypted secret is not valid UTF-8") from err
