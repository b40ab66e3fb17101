"""Tests for request payload construction."""

from watch_talk.core.request_builder import DEFAULT_MODEL, build_request
from watch_talk.state.message import Message


def test_maps_roles_in_chronological_order():
    history = [
        Message.user("Hello"),
        Message.assistant("Hi there!"),
        Message.user("How are you?"),
    ]

    payload = build_request(history, model="gpt-4o-mini")

    assert payload == {
        "model": "gpt-4o-mini",
        "messages": [
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Hi there!"},
            {"role": "user", "content": "How are you?"},
        ],
    }


def test_no_system_message_and_text_sent_verbatim():
    payload = build_request([Message.assistant(""), Message.user("  padded ")])

    assert payload["model"] == DEFAULT_MODEL
    assert [m["role"] for m in payload["messages"]] == ["assistant", "user"]
    assert payload["messages"][0]["content"] == ""
    assert payload["messages"][1]["content"] == "  padded "


def test_empty_history_builds_empty_message_list():
    assert build_request(())["messages"] == []


def test_does_not_mutate_history():
    history = (Message.user("Hello"),)

    build_request(history)["messages"].clear()

    assert history[0].text == "Hello"
