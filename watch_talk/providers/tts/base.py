"""Speech output interface driven by the session's speech events."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterator, Optional
import structlog


logger = structlog.get_logger()


@dataclass
class AudioChunk:
    """One slice of the synthesized audio for a reply."""
    data: bytes
    index: int = 0
    is_final: bool = False
    format: str = "mp3"

    @property
    def is_first(self) -> bool:
        return self.index == 0


class TTSProvider(ABC):
    """
    Turns reply text into audible speech.

    The speech worker calls ``speak`` once per reply. Subclasses provide
    synthesis (text to chunks, ending with a chunk marked final) and
    playback of each chunk. ``play_chunk`` may block until the audio has
    been heard; ``stop_playback`` is called from another thread to cut it
    short.
    """

    name = "base"

    @abstractmethod
    def initialize(self) -> None:
        """Acquire clients and audio devices. Raises if speech is unavailable."""
        pass

    @abstractmethod
    def synthesize(self, text: str) -> Iterator[AudioChunk]:
        pass

    @abstractmethod
    def play_chunk(self, chunk: AudioChunk) -> None:
        pass

    @abstractmethod
    def stop_playback(self) -> None:
        pass

    def speak(self, text: str, interrupted: Optional[Callable[[], bool]] = None) -> int:
        """
        Synthesize and play one reply.

        Args:
            text: Reply text to speak
            interrupted: Polled before each chunk; playback ends once it returns True

        Returns:
            Number of chunks played.
        """
        played = 0
        for chunk in self.synthesize(text):
            if interrupted is not None and interrupted():
                logger.debug("Speech interrupted", provider=self.name, played=played)
                break
            self.play_chunk(chunk)
            played += 1
        return played

    def stop(self) -> None:
        """Release resources. Stops any playback in progress."""
        self.stop_playback()

    def get_status(self) -> dict:
        return {"provider": self.name}
