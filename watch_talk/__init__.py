"""
Watch Talk - a small conversational client.

Captures user utterances, forwards the running conversation to a
chat-completion service, keeps a short persisted history and speaks
the replies aloud through a pluggable TTS provider.
"""

__version__ = "1.0.0"
