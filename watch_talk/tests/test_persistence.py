"""Tests for the message model and conversation persistence."""

import json
import os
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

from watch_talk.state.message import Message, Role
from watch_talk.state.persistence import (
    ConversationStore,
    DeleteError,
    LoadError,
    PersistError,
)


class TestMessage:
    """Test the message model and its record form."""

    def test_factories_set_role_and_unique_ids(self):
        """Each created message gets its own id."""
        first = Message.user("Hello")
        second = Message.user("Hello")

        assert first.role is Role.USER
        assert Message.assistant("Hi").role is Role.ASSISTANT
        assert first.id != second.id

    def test_record_shape(self):
        """Records use the id/text/isUser layout."""
        message = Message.assistant("Hi there!")

        assert message.to_dict() == {"id": message.id, "text": "Hi there!", "isUser": False}

    def test_from_dict_reads_original_records(self):
        """Documents written by earlier clients load unchanged."""
        record = {"id": "7A1C1E2B-0000-4000-8000-000000000001", "text": "こんにちは", "isUser": True}

        message = Message.from_dict(record)

        assert message.id == record["id"]
        assert message.text == "こんにちは"
        assert message.is_user

    @pytest.mark.parametrize(
        "record",
        [
            {"text": "x", "isUser": True},
            {"id": "a", "isUser": True},
            {"id": "a", "text": "x"},
            {"id": "a", "text": "x", "isUser": "yes"},
            ["a", "x", True],
        ],
    )
    def test_from_dict_rejects_invalid_records(self, record):
        """Missing or mistyped fields are rejected."""
        with pytest.raises(ValueError):
            Message.from_dict(record)


class TestConversationStore:
    """Test single-document persistence."""

    def setup_method(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "nested" / "conversation.json"
        self.store = ConversationStore(self.path)

    def teardown_method(self):
        self._tmp.cleanup()

    def test_load_missing_document_returns_none(self):
        """A missing document means no history, not an error."""
        assert self.store.load() is None
        assert not self.store.exists()

    def test_save_load_round_trip(self):
        """Saved messages load back equal and in order, including empty text."""
        messages = [
            Message.user("Hello"),
            Message.assistant(""),
            Message.user("  spaced  "),
            Message.assistant("日本語の返事"),
        ]

        self.store.save(messages)
        loaded = ConversationStore(self.path).load()

        assert loaded == messages

    def test_save_writes_json_array(self):
        """The document is a plain JSON array of records."""
        message = Message.user("Hello")
        self.store.save([message])

        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)

        assert data == [{"id": message.id, "text": "Hello", "isUser": True}]

    def test_save_replaces_whole_document(self):
        """A second save fully replaces the first."""
        self.store.save([Message.user("one"), Message.assistant("two")])
        replacement = [Message.user("three")]

        self.store.save(replacement)

        assert self.store.load() == replacement

    def test_save_leaves_no_temporary_files(self):
        """Only the target document remains after saving."""
        self.store.save([Message.user("Hello")])

        assert [p.name for p in self.path.parent.iterdir()] == ["conversation.json"]

    def test_failed_save_keeps_previous_document(self):
        """A failed replace leaves the old document intact and cleans up."""
        original = [Message.user("keep me")]
        self.store.save(original)

        with patch("watch_talk.state.persistence.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistError, match="disk full"):
                self.store.save([Message.user("lost")])

        assert self.store.load() == original
        assert [p.name for p in self.path.parent.iterdir()] == ["conversation.json"]

    def test_load_invalid_json_raises_load_error(self):
        """Corrupt documents are a load error, distinct from not found."""
        self.path.parent.mkdir(parents=True)
        self.path.write_text("[{not json", encoding="utf-8")

        with pytest.raises(LoadError):
            self.store.load()

    def test_load_non_array_raises_load_error(self):
        """The root must be an array."""
        self.path.parent.mkdir(parents=True)
        self.path.write_text('{"id": "a"}', encoding="utf-8")

        with pytest.raises(LoadError, match="JSON array"):
            self.store.load()

    def test_load_invalid_record_raises_load_error(self):
        """One bad record invalidates the document."""
        self.path.parent.mkdir(parents=True)
        self.path.write_text('[{"id": "a", "text": "x"}]', encoding="utf-8")

        with pytest.raises(LoadError, match="Invalid message"):
            self.store.load()

    def test_delete_removes_document(self):
        """After delete, a fresh store behaves like first run."""
        self.store.save([Message.user("Hello")])

        self.store.delete()

        assert not self.path.exists()
        assert ConversationStore(self.path).load() is None

    def test_delete_missing_document_is_not_an_error(self):
        """Deleting twice is fine."""
        self.store.delete()
        self.store.delete()

    def test_delete_failure_raises_delete_error(self):
        """OS failures while deleting are reported."""
        with patch.object(Path, "unlink", side_effect=PermissionError("denied")):
            with pytest.raises(DeleteError, match="denied"):
                self.store.delete()

    def test_default_path_is_expanded(self):
        """The default location lives under the user's home directory."""
        store = ConversationStore()

        assert store.path.is_absolute()
        assert store.path.name == "conversation.json"
        assert str(store.path).startswith(os.path.expanduser("~"))
