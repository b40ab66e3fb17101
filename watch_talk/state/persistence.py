"""Single-document persistence for the conversation history."""

import os
import json
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence, Union
import structlog

from .message import Message


logger = structlog.get_logger()


DEFAULT_STORAGE_PATH = "~/.watch-talk/conversation.json"


class PersistError(Exception):
    """Raised when the history could not be serialized or written."""


class LoadError(Exception):
    """Raised when an existing document could not be read or decoded."""


class DeleteError(Exception):
    """Raised when the document exists but could not be removed."""


class ConversationStore:
    """Stores the conversation as one JSON document at a fixed path.

    Writes replace the whole document atomically: the data goes to a
    temporary file in the same directory which is then renamed over the
    target, so readers see either the old or the new document.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path or DEFAULT_STORAGE_PATH).expanduser()

    def exists(self) -> bool:
        return self.path.exists()

    def _atomic_write(self, payload: list) -> None:
        """Atomically write payload to the document path."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                dir=self.path.parent,
                delete=False,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                encoding="utf-8",
            ) as tmp_file:
                tmp_path = tmp_file.name
                json.dump(payload, tmp_file, indent=2, ensure_ascii=False)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())

            os.replace(tmp_path, self.path)
        except BaseException:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def save(self, messages: Sequence[Message]) -> None:
        """Replace the stored document with the given messages.

        Raises:
            PersistError: If serialization or the write fails.
        """
        try:
            self._atomic_write([message.to_dict() for message in messages])
        except (OSError, TypeError, ValueError) as e:
            raise PersistError(f"Failed to save conversation to {self.path}: {e}") from e

        logger.debug("Conversation saved", path=str(self.path), message_count=len(messages))

    def load(self) -> Optional[List[Message]]:
        """Read the stored document.

        Returns:
            The stored messages in order, or None if no document exists.

        Raises:
            LoadError: If the document exists but cannot be read or decoded.
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.debug("No stored conversation", path=str(self.path))
            return None
        except (OSError, ValueError) as e:
            raise LoadError(f"Failed to read conversation from {self.path}: {e}") from e

        if not isinstance(data, list):
            raise LoadError(
                f"Conversation document {self.path} must be a JSON array, "
                f"got {type(data).__name__}"
            )

        try:
            messages = [Message.from_dict(record) for record in data]
        except ValueError as e:
            raise LoadError(f"Invalid message in {self.path}: {e}") from e

        logger.debug("Conversation loaded", path=str(self.path), message_count=len(messages))
        return messages

    def delete(self) -> None:
        """Remove the stored document. A missing document is not an error.

        Raises:
            DeleteError: If the document exists but cannot be removed.
        """
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise DeleteError(f"Failed to delete conversation {self.path}: {e}") from e

        logger.debug("Conversation deleted", path=str(self.path))
