"""Audit events written by every store mutation."""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

import orjson
from pydantic import Field

from .base import Record


class EventAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class EventType(str, Enum):
    USER = "user"
    USER_TEAM = "user_team"
    USER_GROUP = "user_group"
    TEAM = "team"
    GROUP = "group"
    PROJECT = "project"
    PROJECT_USER = "project_user"
    PROJECT_TEAM = "project_team"
    PROJECT_GROUP = "project_group"
    RUNNER = "runner"
    CREDENTIAL = "credential"
    REPOSITORY = "repository"
    INVENTORY = "inventory"
    ENVIRONMENT = "environment"
    ENVIRONMENT_SECRET = "environment_secret"
    ENVIRONMENT_VALUE = "environment_value"
    TEMPLATE = "template"


class Event(Record):
    """Audit trail entry.

    ``attrs`` must never carry secret material, only ids, names and
    permission levels.
    """

    user_id: Optional[str] = None
    project_id: Optional[str] = None
    project_display: str = ""
    object_id: str = ""
    object_display: str = ""
    object_type: EventType
    action: EventAction
    attrs: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def encoded_attrs(self) -> bytes:
        """JSON encoding of attrs, as stored in the events table."""
        return orjson.dumps(self.attrs)
