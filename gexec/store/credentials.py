"""Credentials store."""
from __future__ import annotations

from ..exceptions import CredentialNotFoundError
from ..models import Credential, EventType
from .base import Resource


class Credentials(Resource):
    """Project credentials, shell and login secrets are stored encrypted."""

    table_name = "credentials"
    model = Credential
    not_found = CredentialNotFoundError
    event_type = EventType.CREDENTIAL
