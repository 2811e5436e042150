"""
Cascading Secret Walker: apply the envelope across a loaded entity graph.

Starting from a root entity the walker visits the root and every related
entity that is *currently loaded* (relations set to ``None`` are skipped,
nothing is ever fetched). Each visited carrier encrypts or decrypts only
its own secret fields; which relations exist is declared per type by
``related()`` on the model classes.

Calling discipline for a stored entity:

    load -> deserialize -> mutate in memory -> serialize -> persist

``serialize`` twice in a row would encrypt ciphertext again, so it checks
the whole graph first and raises ``AlreadySealedError`` without touching
any field if one carrier is still sealed.
"""
import logging
from typing import TYPE_CHECKING, Iterator

from ..exceptions import AlreadySealedError

if TYPE_CHECKING:
    from ..models.base import SecretCarrier

logger = logging.getLogger("gexec.vault")


def walk(root: "SecretCarrier") -> Iterator["SecretCarrier"]:
    """Yield the root and every loaded related carrier exactly once.

    An instance reachable along two paths (e.g. the same credential used
    for login and become) is visited once.
    """
    seen: set[int] = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if node is None or id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        stack.extend(reversed(list(node.related())))


def serialize(root: "SecretCarrier", passphrase: str) -> None:
    """Encrypt every secret field of the loaded graph below ``root``.

    Raises:
        AlreadySealedError: If any carrier in the graph already holds
            ciphertext. No field is modified in that case.
    """
    nodes = list(walk(root))
    for node in nodes:
        if node.sealed:
            raise AlreadySealedError(
                f"{type(node).__name__} {getattr(node, 'id', '')} is already "
                "serialized, deserialize it before serializing again"
            )
    for node in nodes:
        node.seal(passphrase)
    logger.debug(
        "Serialized secrets of %s %s (%d entities)",
        type(root).__name__, getattr(root, "id", ""), len(nodes),
    )


def deserialize(root: "SecretCarrier", passphrase: str) -> None:
    """Decrypt every secret field of the loaded graph below ``root``.

    Raises:
        WrongPassphraseError: Authentication failed for a field.
        MalformedCiphertextError: A stored field is not a valid blob.
    """
    count = 0
    for node in walk(root):
        node.unseal(passphrase)
        count += 1
    logger.debug(
        "Deserialized secrets of %s %s (%d entities)",
        type(root).__name__, getattr(root, "id", ""), count,
    )
