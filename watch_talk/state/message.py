"""Message model shared by the history store and its persistence."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict
from uuid import uuid4


class Role(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single conversation entry. Order of creation is display order."""

    role: Role
    text: str
    id: str = field(default_factory=lambda: str(uuid4()))

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role=Role.USER, text=text)

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(role=Role.ASSISTANT, text=text)

    @property
    def is_user(self) -> bool:
        return self.role is Role.USER

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted record shape."""
        return {"id": self.id, "text": self.text, "isUser": self.is_user}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        """Create a message from a persisted record.

        Raises:
            ValueError: If the record is missing a field or has a wrong type.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Message record must be an object, got {type(data).__name__}")

        message_id = data.get("id")
        text = data.get("text")
        is_user = data.get("isUser")

        if not isinstance(message_id, str) or not message_id:
            raise ValueError("Message record has no valid 'id'")
        if not isinstance(text, str):
            raise ValueError(f"Message record {message_id} has no valid 'text'")
        if not isinstance(is_user, bool):
            raise ValueError(f"Message record {message_id} has no valid 'isUser'")

        return cls(
            role=Role.USER if is_user else Role.ASSISTANT,
            text=text,
            id=message_id,
        )
