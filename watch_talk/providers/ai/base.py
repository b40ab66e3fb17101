"""Base interface for chat-completion providers."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from ...utils.callbacks import CallbackList


class CompletionError(Exception):
    """A completion turn failed. The conversation must not be changed."""


class CompletionTransportError(CompletionError):
    """No response was received (connection failure, timeout, ...)."""


class CompletionDecodeError(CompletionError):
    """A response arrived but its body is not the expected structure.

    The raw body is kept for diagnostics only.
    """

    def __init__(
        self, message: str, raw_body: Optional[str] = None, status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.raw_body = raw_body
        self.status_code = status_code


class CompletionEmptyError(CompletionError):
    """A well-formed response without a first choice."""


class CompletionProvider(ABC):
    """
    Abstract base class for completion providers.

    Owns the loading indicator: ``send`` raises it for the duration of the
    call and always lowers it again, whatever way the call ends. Overlapping
    calls keep it raised until the last one finishes.
    """

    name = "base"

    def __init__(self):
        self._is_loading = False
        self._active_requests = 0
        self._loading_callbacks = CallbackList("loading_changed")

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def add_loading_callback(self, callback: Callable[[bool], None]) -> None:
        """Register a callback invoked with the new value when loading changes."""
        self._loading_callbacks.register(callback)

    def remove_loading_callback(self, callback: Callable[[bool], None]) -> None:
        self._loading_callbacks.unregister(callback)

    def _set_loading(self, value: bool) -> None:
        if self._is_loading == value:
            return
        self._is_loading = value
        self._loading_callbacks.emit(value)

    async def send(self, payload: Dict[str, Any]) -> str:
        """
        Send a request payload and return the reply text.

        Args:
            payload: Request body as built by ``build_request``.

        Returns:
            The first choice's content with surrounding whitespace removed.

        Raises:
            CompletionError: On transport, decode or empty-response failure.
        """
        self._active_requests += 1
        self._set_loading(True)
        try:
            return await self._complete(payload)
        finally:
            self._active_requests -= 1
            if self._active_requests == 0:
                self._set_loading(False)

    @abstractmethod
    async def _complete(self, payload: Dict[str, Any]) -> str:
        """Perform a single completion attempt."""
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        pass

    def get_status(self) -> dict:
        """Get current status of the provider."""
        return {"provider": self.name, "is_loading": self._is_loading}
