"""
Offline providers used by ``--mock`` runs and tests.
"""

import asyncio
import time
from typing import Any, Dict, Iterator, List, Optional

from .ai.base import CompletionProvider
from .tts.base import TTSProvider, AudioChunk


class MockCompletionProvider(CompletionProvider):
    """Completion provider that cycles through canned replies."""

    name = "mock"

    def __init__(self, replies: Optional[List[str]] = None, delay: float = 0.3):
        super().__init__()
        self.replies = replies or [
            "こんにちは！今日はどうしましたか？",
            "なるほど、それは面白いですね。",
            "もう少し詳しく教えてください。",
            "お役に立ててうれしいです。",
        ]
        self.delay = delay
        self.requests: List[Dict[str, Any]] = []

    async def _complete(self, payload: Dict[str, Any]) -> str:
        self.requests.append(payload)
        await asyncio.sleep(self.delay)
        reply = self.replies[(len(self.requests) - 1) % len(self.replies)]
        return reply.strip()

    def get_status(self) -> dict:
        status = super().get_status()
        status["requests_sent"] = len(self.requests)
        return status


class MockTTSProvider(TTSProvider):
    """TTS provider that records spoken text instead of playing audio."""

    name = "mock"

    def __init__(self, word_delay: float = 0.0):
        self.word_delay = word_delay
        self.is_playing = False
        self.spoken: List[str] = []
        self.chunks_played = 0

    def initialize(self) -> None:
        pass

    def synthesize(self, text: str) -> Iterator[AudioChunk]:
        """Yield one fake chunk per word."""
        self.spoken.append(text)

        words = text.split() or [text]
        for i, word in enumerate(words):
            yield AudioChunk(
                data=word.encode("utf-8"), index=i, is_final=(i == len(words) - 1)
            )

    def play_chunk(self, chunk: AudioChunk) -> None:
        self.is_playing = not chunk.is_final
        if self.word_delay:
            time.sleep(self.word_delay)
        self.chunks_played += 1

    def stop_playback(self) -> None:
        self.is_playing = False

    def get_status(self) -> dict:
        return {
            "provider": self.name,
            "is_playing": self.is_playing,
            "utterances": len(self.spoken),
        }
