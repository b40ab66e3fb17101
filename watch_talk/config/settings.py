"""Configuration settings for the conversational client."""

import os
from pathlib import Path
from typing import Optional, Dict, Any, Union
from dataclasses import dataclass, asdict
import json
import structlog
from dotenv import load_dotenv
import threading


logger = structlog.get_logger()


@dataclass
class CompletionSettings:
    """Chat-completion endpoint settings."""
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    model: str = "gpt-4o-mini"
    timeout: float = 30.0  # seconds


@dataclass
class HistorySettings:
    """Conversation history settings."""
    retention_limit: int = 4
    storage_path: str = "~/.watch-talk/conversation.json"


@dataclass
class SpeechSettings:
    """Speech output settings."""
    enabled: bool = True

    # ElevenLabs
    elevenlabs_voice_id: str = "pNInz6obpgDQGcFmaJgB"  # Adam voice
    elevenlabs_model_id: str = "eleven_flash_v2_5"
    elevenlabs_output_format: str = "mp3_22050_32"
    elevenlabs_language_code: str = "ja"
    elevenlabs_stability: float = 0.5
    elevenlabs_similarity_boost: float = 0.8
    elevenlabs_style: float = 0.0
    elevenlabs_speed: float = 1.0
    elevenlabs_use_speaker_boost: bool = True


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = "WARNING"
    format: str = "json"
    file_enabled: bool = False
    file_rotation_mb: int = 10
    file_backup_count: int = 7


_SECTIONS = ("completion", "history", "speech", "logging")


def _env_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Main settings class.

    Values are resolved as defaults, then an optional JSON file, then
    environment variables (a ``.env`` file is loaded first).
    """

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        self.config_file = Path(config_file) if config_file else None
        self._lock = threading.RLock()
        self._env_loaded = False

        self.completion_provider = "openai"
        self.tts_provider = "elevenlabs"

        self.completion = CompletionSettings()
        self.history = HistorySettings()
        self.speech = SpeechSettings()
        self.logging = LoggingSettings()

        self._load_env_file()

        if self.config_file and self.config_file.exists():
            self.load_from_file()

        self.load_from_env()

    def _load_env_file(self) -> None:
        """Load environment variables from the nearest .env file."""
        if not self._env_loaded:
            current_dir = Path.cwd()
            for parent in [current_dir] + list(current_dir.parents):
                env_file = parent / ".env"
                if env_file.exists():
                    load_dotenv(env_file)
                    logger.debug("Loaded .env file", path=str(env_file))
                    break
            self._env_loaded = True

    def load_from_file(self) -> None:
        """Load settings from the JSON configuration file.

        Unknown keys are ignored. A broken file is logged and skipped so the
        client still starts with defaults.
        """
        if not self.config_file or not self.config_file.exists():
            return

        try:
            with self._lock:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    config = json.load(f)

                for key in ("completion_provider", "tts_provider"):
                    if key in config:
                        setattr(self, key, config[key])

                for section_name in _SECTIONS:
                    section = getattr(self, section_name)
                    for key, value in config.get(section_name, {}).items():
                        if hasattr(section, key):
                            setattr(section, key, value)

                logger.info("Loaded settings from file", file=str(self.config_file))

        except (OSError, ValueError, AttributeError) as e:
            logger.error("Failed to load settings from file",
                         file=str(self.config_file),
                         error=str(e))

    def load_from_env(self) -> None:
        """Load settings from environment variables."""
        with self._lock:
            if os.getenv("COMPLETION_PROVIDER"):
                self.completion_provider = os.getenv("COMPLETION_PROVIDER")
            if os.getenv("TTS_PROVIDER"):
                self.tts_provider = os.getenv("TTS_PROVIDER")

            # Completion
            if os.getenv("COMPLETION_ENDPOINT"):
                self.completion.endpoint = os.getenv("COMPLETION_ENDPOINT")
            if os.getenv("COMPLETION_MODEL"):
                self.completion.model = os.getenv("COMPLETION_MODEL")
            if os.getenv("COMPLETION_TIMEOUT"):
                self.completion.timeout = float(os.getenv("COMPLETION_TIMEOUT"))

            # History
            if os.getenv("HISTORY_RETENTION_LIMIT"):
                self.history.retention_limit = int(os.getenv("HISTORY_RETENTION_LIMIT"))
            if os.getenv("HISTORY_STORAGE_PATH"):
                self.history.storage_path = os.getenv("HISTORY_STORAGE_PATH")

            # Speech
            if os.getenv("SPEECH_ENABLED"):
                self.speech.enabled = _env_bool(os.getenv("SPEECH_ENABLED"))
            if os.getenv("ELEVENLABS_VOICE_ID"):
                self.speech.elevenlabs_voice_id = os.getenv("ELEVENLABS_VOICE_ID")
            if os.getenv("ELEVENLABS_MODEL_ID"):
                self.speech.elevenlabs_model_id = os.getenv("ELEVENLABS_MODEL_ID")
            if os.getenv("ELEVENLABS_OUTPUT_FORMAT"):
                self.speech.elevenlabs_output_format = os.getenv("ELEVENLABS_OUTPUT_FORMAT")
            if os.getenv("ELEVENLABS_LANGUAGE_CODE"):
                self.speech.elevenlabs_language_code = os.getenv("ELEVENLABS_LANGUAGE_CODE")

            # Logging
            if os.getenv("LOG_LEVEL"):
                self.logging.level = os.getenv("LOG_LEVEL")
            if os.getenv("LOG_FORMAT"):
                self.logging.format = os.getenv("LOG_FORMAT")
            if os.getenv("LOG_FILE_ENABLED"):
                self.logging.file_enabled = _env_bool(os.getenv("LOG_FILE_ENABLED"))

    def save_to_file(self, file_path: Optional[Union[str, Path]] = None) -> None:
        """Save current settings to a JSON file."""
        save_path = Path(file_path) if file_path else self.config_file
        if not save_path:
            raise ValueError("No file path provided")

        try:
            with self._lock:
                save_path.parent.mkdir(parents=True, exist_ok=True)
                with open(save_path, "w", encoding="utf-8") as f:
                    json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

                logger.info("Saved settings to file", file=str(save_path))

        except OSError as e:
            logger.error("Failed to save settings to file",
                         file=str(save_path), error=str(e))
            raise

    def get_provider_config(self, provider_type: str) -> Dict[str, Any]:
        """Get constructor arguments for a named provider."""
        if provider_type == "openai":
            return {
                "endpoint": self.completion.endpoint,
                "timeout": self.completion.timeout,
            }
        elif provider_type == "elevenlabs":
            return {
                "voice_id": self.speech.elevenlabs_voice_id,
                "model_id": self.speech.elevenlabs_model_id,
                "output_format": self.speech.elevenlabs_output_format,
                "language_code": self.speech.elevenlabs_language_code or None,
                "stability": self.speech.elevenlabs_stability,
                "similarity_boost": self.speech.elevenlabs_similarity_boost,
                "style": self.speech.elevenlabs_style,
                "speed": self.speech.elevenlabs_speed,
                "use_speaker_boost": self.speech.elevenlabs_use_speaker_boost,
            }
        else:
            raise ValueError(f"Unknown provider type: {provider_type}")

    def reload(self) -> None:
        """Reload settings from file and environment."""
        with self._lock:
            if self.config_file and self.config_file.exists():
                self.load_from_file()
            self.load_from_env()
            logger.info("Settings reloaded")

    def validate(self) -> list[str]:
        """Validate current settings and return list of issues."""
        issues = []

        if self.history.retention_limit < 1:
            issues.append(f"Invalid retention limit: {self.history.retention_limit}")
        if not self.history.storage_path:
            issues.append("History storage path is empty")

        if self.completion.timeout <= 0:
            issues.append(f"Invalid completion timeout: {self.completion.timeout}")
        if not self.completion.model:
            issues.append("Completion model is empty")

        if self.completion_provider not in ["openai", "mock"]:
            issues.append(f"Unknown completion provider: {self.completion_provider}")
        if self.tts_provider not in ["elevenlabs", "mock"]:
            issues.append(f"Unknown TTS provider: {self.tts_provider}")

        if self.logging.level.upper() not in ["DEBUG", "INFO", "WARNING", "ERROR"]:
            issues.append(f"Invalid log level: {self.logging.level}")

        return issues

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to dictionary for serialization."""
        data: Dict[str, Any] = {
            "completion_provider": self.completion_provider,
            "tts_provider": self.tts_provider,
        }
        for section_name in _SECTIONS:
            data[section_name] = asdict(getattr(self, section_name))
        return data


# Global settings instance
settings = Settings()
