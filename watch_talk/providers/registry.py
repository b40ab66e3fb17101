"""Provider registry for selecting providers by name."""

from typing import Any, Callable, Dict, Optional, Type
import structlog

from .ai.base import CompletionProvider
from .tts.base import TTSProvider


logger = structlog.get_logger()


class ProviderRegistry:
    """Registry for completion and TTS provider implementations."""

    def __init__(self):
        self._completion_providers: Dict[str, Type[CompletionProvider]] = {}
        self._tts_providers: Dict[str, Type[TTSProvider]] = {}
        self._provider_configs: Dict[str, Callable[[], Dict[str, Any]]] = {}

    def register_completion_provider(
        self,
        name: str,
        provider_class: Type[CompletionProvider],
        config_getter: Optional[Callable[[], Dict[str, Any]]] = None,
    ) -> None:
        """Register a completion provider."""
        self._completion_providers[name] = provider_class
        if config_getter:
            self._provider_configs[f"completion:{name}"] = config_getter
        logger.debug(
            "Registered completion provider", name=name, class_name=provider_class.__name__
        )

    def register_tts_provider(
        self,
        name: str,
        provider_class: Type[TTSProvider],
        config_getter: Optional[Callable[[], Dict[str, Any]]] = None,
    ) -> None:
        """Register a TTS provider."""
        self._tts_providers[name] = provider_class
        if config_getter:
            self._provider_configs[f"tts:{name}"] = config_getter
        logger.debug(
            "Registered TTS provider", name=name, class_name=provider_class.__name__
        )

    def _build(self, kind: str, providers: Dict[str, type], name: str, kwargs: Dict[str, Any]):
        if name not in providers:
            raise ValueError(f"Unknown {kind} provider: {name}")

        config_key = f"{kind}:{name}"
        if config_key in self._provider_configs:
            # Explicit keyword arguments win over configured defaults
            config = self._provider_configs[config_key]()
            config.update(kwargs)
            kwargs = config

        return providers[name](**kwargs)

    def get_completion_provider(self, name: str, **kwargs) -> CompletionProvider:
        """Get a completion provider instance."""
        return self._build("completion", self._completion_providers, name, kwargs)

    def get_tts_provider(self, name: str, **kwargs) -> TTSProvider:
        """Get a TTS provider instance."""
        return self._build("tts", self._tts_providers, name, kwargs)

    def list_completion_providers(self) -> list[str]:
        return list(self._completion_providers.keys())

    def list_tts_providers(self) -> list[str]:
        return list(self._tts_providers.keys())

    def clear(self) -> None:
        """Clear all registered providers."""
        self._completion_providers.clear()
        self._tts_providers.clear()
        self._provider_configs.clear()


# Global registry instance
registry = ProviderRegistry()
