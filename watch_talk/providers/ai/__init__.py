"""Chat-completion providers."""


def register_providers():
    """Register all completion providers."""
    # Import at function level to avoid circular imports
    from ..registry import registry
    from ...config.settings import settings
    from .openai_chat import OpenAIChatProvider

    def get_openai_config():
        return settings.get_provider_config("openai")

    registry.register_completion_provider("openai", OpenAIChatProvider, get_openai_config)
