"""Change-feed event schemas."""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class ChangeKind(str, Enum):
    """Row-level change kind."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class EntityKind(str, Enum):
    """Entity a change event refers to."""

    APPOINTMENT = "appointment"
    SUGGESTION = "suggestion"
    NOTIFICATION = "notification"


TABLE_ENTITIES = {
    "appointments": EntityKind.APPOINTMENT,
    "appointment_suggestions": EntityKind.SUGGESTION,
    "notifications": EntityKind.NOTIFICATION,
}


class ChangeEvent(BaseModel):
    """A row change observed on the change feed."""

    kind: ChangeKind
    entity: EntityKind
    payload: dict[str, Any]

    @property
    def record_id(self) -> str:
        return str(self.payload["id"])

    @classmethod
    def from_feed(cls, message: dict[str, Any]) -> "ChangeEvent":
        """
        Build an event from the feed wire shape.

        Args:
            message: ``{"eventType", "table", "new", "old"}`` as published by
                the table triggers

        Returns:
            The parsed event; ``payload`` is ``new`` for inserts and updates
            and ``old`` for deletes

        Raises:
            ValueError: If the message is not an object, the table is not
                watched or the row is missing
        """
        if not isinstance(message, dict):
            raise ValueError(f"Expected an object, got {type(message).__name__}")

        kind = ChangeKind(message["eventType"])
        table = message.get("table")
        if table not in TABLE_ENTITIES:
            raise ValueError(f"Unwatched table: {table}")

        payload = message.get("old") if kind is ChangeKind.DELETE else message.get("new")
        if not isinstance(payload, dict) or "id" not in payload:
            raise ValueError(f"{kind.value} event on {table} carries no row")

        return cls(kind=kind, entity=TABLE_ENTITIES[table], payload=payload)
