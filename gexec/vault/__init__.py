"""GExec Vault: Field-level secret envelope and cascading walker.

Security Note (Threat Model):
    The passphrase is used directly as AES key, without salt or key
    derivation, to stay compatible with rows already stored. Decrypted
    secrets live in process memory between deserialize and serialize.
    Passphrase rotation is available in ``gexec.vault.rotation``.
"""

from .config import EncryptConfig, generate_passphrase, load_passphrase
from .crypto import decrypt_secret, encrypt_secret
from .cascade import deserialize, serialize

__all__ = [
    "EncryptConfig",
    "generate_passphrase",
    "load_passphrase",
    "encrypt_secret",
    "decrypt_secret",
    "serialize",
    "deserialize",
]
