"""ElevenLabs TTS provider implementation."""

import os
import threading
from io import BytesIO
from typing import Any, Dict, Iterator, Optional
import pygame
from elevenlabs import VoiceSettings
from elevenlabs.client import ElevenLabs
import structlog

from .base import TTSProvider, AudioChunk


logger = structlog.get_logger()


DEFAULT_SAMPLE_RATE = 22050


def _sample_rate(output_format: str) -> int:
    """Sample rate encoded in an ElevenLabs output format such as ``mp3_22050_32``."""
    parts = output_format.split("_")
    if len(parts) > 1 and parts[1].isdigit():
        return int(parts[1])
    return DEFAULT_SAMPLE_RATE


class ElevenLabsProvider(TTSProvider):
    """
    Speaks replies with ElevenLabs through the pygame mixer.

    Each reply is converted in one request and cut into chunks. Chunks are
    buffered until the final one arrives; playback then runs on the calling
    thread (the speech worker) until the clip ends or ``stop_playback`` is
    called.
    """

    name = "elevenlabs"

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: str = "pNInz6obpgDQGcFmaJgB",  # Adam voice
        model_id: str = "eleven_flash_v2_5",
        output_format: str = "mp3_22050_32",
        language_code: Optional[str] = "ja",
        stability: float = 0.5,
        similarity_boost: float = 0.8,
        style: float = 0.0,
        speed: float = 1.0,
        use_speaker_boost: bool = True,
        chunk_size: int = 4096,
        poll_interval: float = 0.01,
    ):
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.output_format = output_format
        self.language_code = language_code
        self.chunk_size = chunk_size
        self.poll_interval = poll_interval

        self.voice_settings = VoiceSettings(
            stability=stability,
            similarity_boost=similarity_boost,
            style=style,
            use_speaker_boost=use_speaker_boost,
            speed=speed,
        )

        self.client: Optional[ElevenLabs] = None
        self.is_playing = False
        self.replies_played = 0
        self._mixer_ready = False
        self._buffer = BytesIO()
        self._stopped = threading.Event()

    def initialize(self) -> None:
        """Create the ElevenLabs client and open the audio device."""
        api_key = self.api_key or os.getenv("ELEVENLABS_API_KEY")
        if not api_key:
            raise ValueError("ELEVENLABS_API_KEY is not set")

        self.client = ElevenLabs(api_key=api_key)

        pygame.mixer.pre_init(
            frequency=_sample_rate(self.output_format), size=-16, channels=2, buffer=1024
        )
        pygame.mixer.init()
        self._mixer_ready = True

        logger.info(
            "ElevenLabs provider initialized",
            voice_id=self.voice_id,
            model_id=self.model_id,
            language_code=self.language_code,
        )

    def _convert(self, text: str) -> bytes:
        kwargs: Dict[str, Any] = {
            "voice_id": self.voice_id,
            "text": text,
            "model_id": self.model_id,
            "output_format": self.output_format,
            "voice_settings": self.voice_settings,
        }
        if self.language_code:
            kwargs["language_code"] = self.language_code

        audio = self.client.text_to_speech.convert(**kwargs)
        if isinstance(audio, (bytes, bytearray)):
            return bytes(audio)
        # Iterator of byte chunks
        return b"".join(audio)

    def synthesize(self, text: str) -> Iterator[AudioChunk]:
        """Convert text and yield fixed-size chunks, then an empty final chunk."""
        if not self.client:
            raise RuntimeError("ElevenLabs not initialized")

        self._stopped.clear()
        self._buffer = BytesIO()

        audio = self._convert(text)
        audio_format = self.output_format.split("_")[0]
        logger.debug("Reply synthesized", text_length=len(text), audio_bytes=len(audio))

        index = 0
        for start in range(0, len(audio), self.chunk_size):
            if self._stopped.is_set():
                return
            yield AudioChunk(
                data=audio[start : start + self.chunk_size], index=index, format=audio_format
            )
            index += 1

        yield AudioChunk(data=b"", index=index, is_final=True, format=audio_format)

    def play_chunk(self, chunk: AudioChunk) -> None:
        """Buffer the chunk; on the final one, play the whole reply and wait."""
        self._buffer.write(chunk.data)
        if not chunk.is_final:
            return

        clip, self._buffer = self._buffer, BytesIO()
        if not clip.tell() or self._stopped.is_set():
            return

        clip.seek(0)
        pygame.mixer.music.load(clip, chunk.format)
        pygame.mixer.music.play()
        self.is_playing = True
        try:
            while pygame.mixer.music.get_busy():
                if self._stopped.wait(self.poll_interval):
                    break
        finally:
            self.is_playing = False

        self.replies_played += 1
        logger.debug("Reply played", replies_played=self.replies_played)

    def stop_playback(self) -> None:
        """Cut the current reply short and drop any buffered audio."""
        self._stopped.set()
        if self.is_playing:
            pygame.mixer.music.stop()
        self._buffer = BytesIO()

    def stop(self) -> None:
        """Stop playback and close the audio device."""
        self.stop_playback()
        if self._mixer_ready:
            pygame.mixer.quit()
            self._mixer_ready = False
        self.client = None
        logger.info("ElevenLabs provider stopped")

    def get_status(self) -> dict:
        return {
            "provider": self.name,
            "voice_id": self.voice_id,
            "model_id": self.model_id,
            "output_format": self.output_format,
            "language_code": self.language_code,
            "is_playing": self.is_playing,
            "replies_played": self.replies_played,
            "initialized": self.client is not None,
        }
