"""Maps the conversation history onto a chat-completion request body."""

from typing import Any, Dict, List, Sequence

from ..state.message import Message, Role


DEFAULT_MODEL = "gpt-4o-mini"

_WIRE_ROLES = {
    Role.USER: "user",
    Role.ASSISTANT: "assistant",
}


def build_request(history: Sequence[Message], model: str = DEFAULT_MODEL) -> Dict[str, Any]:
    """Build the request body for the completion endpoint.

    The whole retained window is sent as context on every turn, oldest
    first. There is no system message.

    Args:
        history: Messages in chronological order.
        model: Model identifier sent with the request.

    Returns:
        ``{"model": ..., "messages": [{"role": ..., "content": ...}, ...]}``
    """
    messages: List[Dict[str, str]] = [
        {"role": _WIRE_ROLES[message.role], "content": message.text}
        for message in history
    ]
    return {"model": model, "messages": messages}
