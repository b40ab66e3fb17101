"""
Speaks replies on a background thread so the session loop never blocks on audio.
"""

import threading
from queue import Queue, Empty
from typing import Optional
import structlog

from ..providers.tts.base import TTSProvider


logger = structlog.get_logger()


class SpeechWorker:
    """
    Consumes "speak this text" events and plays them through a TTS provider.

    ``speak`` only enqueues, so it is safe to register directly as a
    session speech callback. Texts are spoken one after another in arrival
    order; ``interrupt`` drops whatever is queued or playing.
    """

    def __init__(self, tts_provider: TTSProvider, poll_interval: float = 0.2):
        self.tts_provider = tts_provider
        self.poll_interval = poll_interval

        self.text_queue: "Queue[str]" = Queue()
        self.is_running = False
        self.is_speaking = False
        self.shutdown_event = threading.Event()
        self.interrupt_event = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self.error_count = 0

    def start(self) -> None:
        """Initialize the provider and start the worker thread."""
        self.tts_provider.initialize()

        self.shutdown_event.clear()
        self.is_running = True
        self.thread = threading.Thread(
            target=self._worker, daemon=True, name="TTS-Worker"
        )
        self.thread.start()
        logger.info("Speech worker started", provider=self.tts_provider.name)

    def speak(self, text: str) -> None:
        """Queue text to be spoken. Blank text is ignored."""
        if not text or not text.strip():
            logger.debug("Skipping blank speech request")
            return
        self.text_queue.put(text)

    def interrupt(self) -> None:
        """Stop the current utterance and drop queued ones."""
        cleared = 0
        while True:
            try:
                self.text_queue.get_nowait()
                self.text_queue.task_done()
                cleared += 1
            except Empty:
                break

        if self.is_speaking:
            self.interrupt_event.set()
            try:
                self.tts_provider.stop_playback()
            except Exception as e:
                logger.warning("Error stopping TTS playback", error=str(e))

        logger.debug("Speech interrupted", cleared=cleared)

    def stop(self) -> None:
        """Stop the worker thread and the provider."""
        self.is_running = False
        self.shutdown_event.set()
        self.interrupt()

        if self.thread and self.thread.is_alive():
            self.thread.join(timeout=5)
            if self.thread.is_alive():
                logger.warning("Speech worker did not terminate gracefully")

        try:
            self.tts_provider.stop()
        except Exception as e:
            logger.warning("Error stopping TTS provider", error=str(e))

        logger.info("Speech worker stopped")

    def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every queued text has been handled."""
        done = threading.Event()

        def _join():
            self.text_queue.join()
            done.set()

        threading.Thread(target=_join, daemon=True).start()
        return done.wait(timeout)

    def _should_stop_speaking(self) -> bool:
        return self.shutdown_event.is_set() or self.interrupt_event.is_set()

    def _worker(self) -> None:
        logger.debug("TTS worker started")

        while self.is_running and not self.shutdown_event.is_set():
            try:
                text = self.text_queue.get(timeout=self.poll_interval)
            except Empty:
                continue

            self.interrupt_event.clear()
            self.is_speaking = True
            try:
                played = self.tts_provider.speak(text, interrupted=self._should_stop_speaking)
                logger.debug("Reply spoken", chunks=played)

            except Exception as e:
                self.error_count += 1
                logger.error("TTS streaming error", error=str(e), error_count=self.error_count)

            finally:
                self.is_speaking = False
                self.text_queue.task_done()

        logger.debug("TTS worker stopped")

    def get_status(self) -> dict:
        """Get speech worker status."""
        return {
            "is_running": self.is_running,
            "is_speaking": self.is_speaking,
            "queue_size": self.text_queue.qsize(),
            "error_count": self.error_count,
            "provider": self.tts_provider.get_status(),
        }
