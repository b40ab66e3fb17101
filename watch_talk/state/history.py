"""Bounded, persisted, observable conversation history."""

from typing import Callable, List, Tuple
import structlog

from ..utils.callbacks import CallbackList
from .message import Message
from .persistence import ConversationStore, DeleteError, LoadError, PersistError


logger = structlog.get_logger()


DEFAULT_RETENTION_LIMIT = 4

Snapshot = Tuple[Message, ...]


class HistoryStore:
    """
    In-memory ordered message sequence backed by a ConversationStore.

    The in-memory sequence is the source of truth for the running session.
    Every mutation is persisted right away, but a failed write is only
    logged: the session keeps going with unsaved state.
    """

    def __init__(
        self, store: ConversationStore, retention_limit: int = DEFAULT_RETENTION_LIMIT
    ):
        if retention_limit < 1:
            raise ValueError(f"retention_limit must be at least 1, got {retention_limit}")

        self.store = store
        self.retention_limit = retention_limit
        self._messages: List[Message] = []
        self._subscribers = CallbackList("history_changed")

    def load(self) -> None:
        """Replace the in-memory history with the stored document, if any."""
        try:
            messages = self.store.load()
        except LoadError as e:
            logger.error("Failed to load conversation, starting empty", error=str(e))
            messages = None

        if messages is None:
            self._messages = []
        else:
            self._messages = messages[-self.retention_limit:]
            logger.info(
                "Conversation restored",
                stored=len(messages),
                kept=len(self._messages),
            )
            if len(messages) > self.retention_limit:
                self._save()

        self._notify()

    def append(self, message: Message) -> None:
        """Append a message, drop the oldest beyond the limit, then persist."""
        self._messages.append(message)
        if len(self._messages) > self.retention_limit:
            dropped = len(self._messages) - self.retention_limit
            self._messages = self._messages[-self.retention_limit:]
            logger.debug("Trimmed history", dropped=dropped)

        self._save()
        self._notify()

    def clear(self) -> None:
        """Empty the history and delete the stored document."""
        self._messages = []

        try:
            self.store.delete()
        except DeleteError as e:
            logger.error("Failed to delete stored conversation", error=str(e))

        logger.info("History cleared")
        self._notify()

    def snapshot(self) -> Snapshot:
        """Read-only copy of the current messages in chronological order."""
        return tuple(self._messages)

    def subscribe(self, callback: Callable[[Snapshot], None]) -> None:
        """Call callback with a fresh snapshot after every change."""
        self._subscribers.register(callback)

    def unsubscribe(self, callback: Callable[[Snapshot], None]) -> None:
        self._subscribers.unregister(callback)

    def _save(self) -> None:
        try:
            self.store.save(self._messages)
        except PersistError as e:
            logger.error(
                "Failed to persist conversation",
                error=str(e),
                message_count=len(self._messages),
            )

    def _notify(self) -> None:
        self._subscribers.emit(self.snapshot())

    def __len__(self) -> int:
        return len(self._messages)
