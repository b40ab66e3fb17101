"""
Session controller: drives one conversational turn at a time.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional
import structlog

from ..providers.ai.base import CompletionError, CompletionProvider
from ..state.history import HistoryStore, Snapshot
from ..state.message import Message
from ..utils.callbacks import CallbackList
from .request_builder import DEFAULT_MODEL, build_request


logger = structlog.get_logger()


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"


class TurnStatus(str, Enum):
    REPLIED = "replied"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REJECTED_EMPTY = "rejected_empty"
    REJECTED_BUSY = "rejected_busy"


@dataclass
class TurnResult:
    """Terminal outcome of a single submission."""

    status: TurnStatus
    reply: Optional[str] = None
    error: Optional[CompletionError] = None

    @property
    def accepted(self) -> bool:
        return self.status not in (TurnStatus.REJECTED_EMPTY, TurnStatus.REJECTED_BUSY)


class SessionController:
    """
    Orchestrates history, request building, completion and speech.

    A turn runs append(user) -> persist -> build request -> send, then on
    success append(assistant) -> persist -> speech event. Failed turns leave
    the history exactly as it was after the user message was appended.
    Only one request may be in flight; further submissions are rejected
    until it settles.
    """

    def __init__(
        self,
        history: HistoryStore,
        completion: CompletionProvider,
        model: str = DEFAULT_MODEL,
    ):
        self.history = history
        self.completion = completion
        self.model = model

        self._history_changed = CallbackList("history_changed")
        self._loading_changed = CallbackList("loading_changed")
        self._speech_requested = CallbackList("speech_requested")
        self._turn_failed = CallbackList("turn_failed")

        self._inflight: Optional[asyncio.Future] = None
        # Bumped by clear_history so a reply from before the clear is dropped
        self._generation = 0

        self.history.subscribe(self._history_changed.emit)

        self.history.load()
        logger.info(
            "Session ready",
            provider=self.completion.name,
            model=self.model,
            restored_messages=len(self.history),
        )

    # Observers

    def on_history_changed(self, callback: Callable[[Snapshot], None]) -> None:
        self._history_changed.register(callback)

    def on_loading_changed(self, callback: Callable[[bool], None]) -> None:
        self._loading_changed.register(callback)

    def on_speech_requested(self, callback: Callable[[str], None]) -> None:
        self._speech_requested.register(callback)

    def on_turn_failed(self, callback: Callable[[CompletionError], None]) -> None:
        self._turn_failed.register(callback)

    # State

    @property
    def state(self) -> SessionState:
        if self._inflight is not None:
            return SessionState.AWAITING_REPLY
        return SessionState.IDLE

    @property
    def is_loading(self) -> bool:
        """True while this session waits for a reply."""
        return self._inflight is not None

    def snapshot(self) -> Snapshot:
        return self.history.snapshot()

    # Events from the presentation layer

    async def submit_user_text(self, text: str) -> TurnResult:
        """Run one turn for the submitted text."""
        if not text or not text.strip():
            logger.debug("Ignoring empty submission")
            return TurnResult(TurnStatus.REJECTED_EMPTY)

        if self._inflight is not None:
            logger.warning("Submission rejected, a reply is still pending")
            return TurnResult(TurnStatus.REJECTED_BUSY)

        generation = self._generation
        self.history.append(Message.user(text))
        payload = build_request(self.history.snapshot(), model=self.model)

        request = asyncio.ensure_future(self.completion.send(payload))
        self._set_inflight(request)
        try:
            reply = await request
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
            logger.info("Turn cancelled")
            return TurnResult(TurnStatus.CANCELLED)
        except CompletionError as e:
            logger.warning("Turn failed", error_type=type(e).__name__, error=str(e))
            self._turn_failed.emit(e)
            return TurnResult(TurnStatus.FAILED, error=e)
        finally:
            if self._inflight is request:
                self._set_inflight(None)

        if generation != self._generation:
            logger.info("Dropping reply that arrived after history was cleared")
            return TurnResult(TurnStatus.CANCELLED)

        self.history.append(Message.assistant(reply))
        self._speech_requested.emit(reply)
        logger.info("Turn completed", reply_length=len(reply))
        return TurnResult(TurnStatus.REPLIED, reply=reply)

    def clear_history(self) -> None:
        """Clear the conversation and abandon any pending reply."""
        self._generation += 1
        if self._inflight is not None:
            if not self._inflight.done():
                logger.info("Cancelling pending completion request")
                self._inflight.cancel()
            # The abandoned turn unwinds on its own; the session is free now
            self._set_inflight(None)
        self.history.clear()

    def _set_inflight(self, request: Optional[asyncio.Future]) -> None:
        was_loading = self._inflight is not None
        self._inflight = request
        if was_loading != (request is not None):
            self._loading_changed.emit(request is not None)

    def get_status(self) -> Dict[str, Any]:
        """Get current session status."""
        return {
            "state": self.state.value,
            "is_loading": self.is_loading,
            "message_count": len(self.history),
            "retention_limit": self.history.retention_limit,
            "model": self.model,
            "provider": self.completion.get_status(),
        }
