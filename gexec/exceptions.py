"""
GExec Exceptions.

Cipher, guard and store failures are raised as distinct types so callers
can tell "cannot decrypt, check passphrase" apart from corrupt data or a
missing record. Access decisions are not exceptions, see ``gexec.access``.
"""


class GexecError(Exception):
    """Base class for all gexec errors."""


class ConfigurationError(GexecError):
    """Invalid or missing process configuration, fatal at startup."""


# ---------------------------------------------------------------------------
# Envelope cipher
# ---------------------------------------------------------------------------

class CipherError(GexecError):
    """Base class for secret decryption failures."""


class WrongPassphraseError(CipherError):
    """Authentication tag mismatch: wrong passphrase or tampered blob."""

    def __init__(self, message: str = "wrong encryption passphrase"):
        super().__init__(message)


class MalformedCiphertextError(CipherError):
    """Stored blob is structurally invalid (bad base64, too short)."""


class AlreadySealedError(GexecError):
    """Serialize was called on a graph that still holds ciphertext."""


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class StoreError(GexecError):
    """Base class for store failures."""


class NotFoundError(StoreError):
    """Requested record does not exist."""

    kind = "record"

    def __init__(self, name: str = ""):
        self.name = name
        super().__init__(f"{self.kind} not found" + (f": {name}" if name else ""))


class ProjectNotFoundError(NotFoundError):
    kind = "project"


class UserNotFoundError(NotFoundError):
    kind = "user"


class TeamNotFoundError(NotFoundError):
    kind = "team"


class GroupNotFoundError(NotFoundError):
    kind = "group"


class CredentialNotFoundError(NotFoundError):
    kind = "credential"


class RepositoryNotFoundError(NotFoundError):
    kind = "repository"


class InventoryNotFoundError(NotFoundError):
    kind = "inventory"


class EnvironmentNotFoundError(NotFoundError):
    kind = "environment"


class EnvironmentSecretNotFoundError(NotFoundError):
    kind = "environment secret"


class EnvironmentValueNotFoundError(NotFoundError):
    kind = "environment value"


class RunnerNotFoundError(NotFoundError):
    kind = "runner"


class TemplateNotFoundError(NotFoundError):
    kind = "template"


class AlreadyAssignedError(StoreError):
    """Grant or membership edge already exists."""

    def __init__(self, message: str = "relation is already assigned"):
        super().__init__(message)


class NotAssignedError(StoreError):
    """Grant or membership edge does not exist."""

    def __init__(self, message: str = "relation is not assigned"):
        super().__init__(message)


class InvalidRecordError(StoreError):
    """A record failed validation on a single field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")
