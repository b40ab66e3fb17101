"""Provider interfaces and implementations for completion and TTS."""

from .registry import registry

# Defer provider registration to avoid circular imports
def _register_all_providers():
    """Register all provider types."""
    from . import ai, tts
    from .mock import MockCompletionProvider, MockTTSProvider

    ai.register_providers()
    tts.register_providers()
    registry.register_completion_provider("mock", MockCompletionProvider)
    registry.register_tts_provider("mock", MockTTSProvider)

# Register providers after module initialization
_register_all_providers()

__all__ = ['registry']
