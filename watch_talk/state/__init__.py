"""Conversation history, its model and its on-disk store."""
