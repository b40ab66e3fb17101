"""Observer lists for events emitted to the presentation layer."""

from typing import Any, Callable, List
import structlog


logger = structlog.get_logger()


class CallbackList:
    """Ordered set of callbacks invoked with the same arguments.

    A callback that raises is logged and skipped so one faulty observer
    cannot stop the others or the emitter.
    """

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[Callable[..., Any]] = []

    def register(self, callback: Callable[..., Any]) -> None:
        """Register a callback. Registering the same callable twice is a no-op."""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister(self, callback: Callable[..., Any]) -> None:
        """Unregister a callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def emit(self, *args: Any) -> None:
        """Invoke every registered callback."""
        for callback in list(self._callbacks):
            try:
                callback(*args)
            except Exception as e:
                logger.error(
                    "Callback error",
                    signal=self.name,
                    callback=getattr(callback, "__qualname__", repr(callback)),
                    error=str(e),
                )

    def __len__(self) -> int:
        return len(self._callbacks)
