"""
Vault Passphrase Rotation: Re-encrypt every stored secret column.

Walks all tables holding secret columns, decrypts each row with the old
passphrase and encrypts it again with the new one. Nothing is written
unless every row decrypted successfully, a failing row aborts the whole
rotation and leaves the tables untouched.

Security Note:
    Plaintext exists in memory only during re-encryption of each row.
    Never log plaintext, ciphertext or passphrases.
"""
import logging
from typing import TYPE_CHECKING

from ..models import Credential, EnvironmentSecret, EnvironmentValue, Runner
from .crypto import passphrase_key

if TYPE_CHECKING:
    from ..store import Store

logger = logging.getLogger("gexec.vault")

SECRET_TABLES = (
    ("credentials", Credential),
    ("environment_secrets", EnvironmentSecret),
    ("environment_values", EnvironmentValue),
    ("runners", Runner),
)


def rotate_passphrase(store: "Store", old: str, new: str) -> dict:
    """Re-encrypt all secrets of ``store`` from ``old`` to ``new``.

    Args:
        store: Store whose tables get rotated.
        old: Passphrase the rows are currently encrypted with.
        new: Passphrase to encrypt the rows with.

    Returns:
        Stats dict with keys: total, rotated, skipped.

    Raises:
        ConfigurationError: If ``new`` is not a valid passphrase.
        WrongPassphraseError: If a row cannot be decrypted with ``old``.
        MalformedCiphertextError: If a stored row is corrupt.
    """
    passphrase_key(old)
    passphrase_key(new)
    stats = {"total": 0, "rotated": 0, "skipped": 0}
    pending = []

    logger.info("Starting passphrase rotation")

    for table_name, model in SECRET_TABLES:
        table = store.client.table(table_name)
        keys = table.keys()
        logger.info("Processing %s (%d rows)", table_name, len(keys))
        for key in keys:
            stats["total"] += 1
            record = model.from_row(table.get(key))
            record.unseal(old)
            carrier = record.secret if isinstance(record, Credential) else record
            if not any(getattr(carrier, name) for name in carrier.secret_fields):
                stats["skipped"] += 1
                continue
            record.seal(new)
            pending.append((table, key, record.to_row()))
            stats["rotated"] += 1

    for table, key, row in pending:
        table.put(key, row)
    store.client.passphrase = new

    logger.info("Passphrase rotation complete: %s", stats)
    return stats
