"""Runner model."""
from typing import ClassVar, Optional

from .base import SecretRecord


class Runner(SecretRecord):
    """Runner executing jobs, global when ``project_id`` is unset."""

    project_id: Optional[str] = None
    slug: str = ""
    name: str = ""
    token: str = ""

    secret_fields: ClassVar[tuple[str, ...]] = ("token",)
