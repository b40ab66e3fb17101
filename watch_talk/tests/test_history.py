"""Tests for the history store."""

import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from watch_talk.state.history import HistoryStore
from watch_talk.state.message import Message
from watch_talk.state.persistence import (
    ConversationStore,
    DeleteError,
    LoadError,
    PersistError,
)


class TestHistoryStore:
    """Test retention, persistence side effects and notifications."""

    def setup_method(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "conversation.json"
        self.store = ConversationStore(self.path)
        self.history = HistoryStore(self.store, retention_limit=4)

    def teardown_method(self):
        self._tmp.cleanup()

    def test_rejects_retention_limit_below_one(self):
        with pytest.raises(ValueError):
            HistoryStore(self.store, retention_limit=0)

    def test_append_keeps_most_recent_messages(self):
        """Length is min(appended, limit) and the newest messages survive in order."""
        appended = []
        for i in range(9):
            message = Message.user(f"m{i}") if i % 2 == 0 else Message.assistant(f"m{i}")
            appended.append(message)
            self.history.append(message)

            assert len(self.history) == min(i + 1, 4)
            assert list(self.history.snapshot()) == appended[-4:]

    def test_append_persists_trimmed_history(self):
        """The stored document matches the trimmed in-memory history."""
        for i in range(6):
            self.history.append(Message.user(f"m{i}"))

        stored = ConversationStore(self.path).load()

        assert [m.text for m in stored] == ["m2", "m3", "m4", "m5"]

    def test_snapshot_is_a_copy(self):
        """Snapshots do not change when the history does."""
        self.history.append(Message.user("Hello"))
        snapshot = self.history.snapshot()

        self.history.append(Message.assistant("Hi"))

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1

    def test_subscribers_receive_snapshots(self):
        """Each change notifies subscribers with the new snapshot."""
        callback = Mock()
        self.history.subscribe(callback)

        message = Message.user("Hello")
        self.history.append(message)
        self.history.clear()

        assert callback.call_count == 2
        assert callback.call_args_list[0].args[0] == (message,)
        assert callback.call_args_list[1].args[0] == ()

    def test_unsubscribe_stops_notifications(self):
        callback = Mock()
        self.history.subscribe(callback)
        self.history.unsubscribe(callback)

        self.history.append(Message.user("Hello"))

        callback.assert_not_called()

    def test_failing_subscriber_does_not_break_append(self):
        """A raising observer is isolated from the store and other observers."""
        broken = Mock(side_effect=RuntimeError("render failed"))
        healthy = Mock()
        self.history.subscribe(broken)
        self.history.subscribe(healthy)

        self.history.append(Message.user("Hello"))

        assert len(self.history) == 1
        healthy.assert_called_once()

    def test_clear_deletes_document(self):
        """Clear empties memory and removes the document entirely."""
        self.history.append(Message.user("Hello"))
        assert self.path.exists()

        self.history.clear()

        assert len(self.history) == 0
        assert not self.path.exists()
        assert ConversationStore(self.path).load() is None

    def test_load_restores_stored_history(self):
        """A new store picks up where the previous session left off."""
        self.history.append(Message.user("Hello"))
        self.history.append(Message.assistant("Hi there!"))

        restored = HistoryStore(ConversationStore(self.path), retention_limit=4)
        restored.load()

        assert restored.snapshot() == self.history.snapshot()

    def test_load_trims_oversized_document(self):
        """A document longer than the limit keeps only the newest messages."""
        messages = [Message.user(f"m{i}") for i in range(6)]
        self.store.save(messages)

        self.history.load()

        assert list(self.history.snapshot()) == messages[-4:]

    def test_load_rewrites_oversized_document(self):
        """The stored document is trimmed to the retained window on load."""
        messages = [Message.user(f"m{i}") for i in range(6)]
        self.store.save(messages)

        self.history.load()

        assert ConversationStore(self.path).load() == messages[-4:]

    def test_load_within_limit_does_not_rewrite(self):
        store = Mock(spec=ConversationStore)
        store.load.return_value = [Message.user("Hello")]
        history = HistoryStore(store, retention_limit=4)

        history.load()

        store.save.assert_not_called()

    def test_load_error_degrades_to_empty_history(self):
        """An unreadable document starts the session empty."""
        self.path.write_text("garbage", encoding="utf-8")
        callback = Mock()
        self.history.subscribe(callback)

        self.history.load()

        assert self.history.snapshot() == ()
        callback.assert_called_once_with(())

    def test_persist_error_keeps_in_memory_state(self):
        """Write failures are logged but do not roll back the append."""
        store = Mock(spec=ConversationStore)
        store.save.side_effect = PersistError("read-only")
        history = HistoryStore(store, retention_limit=4)

        history.append(Message.user("Hello"))

        assert [m.text for m in history.snapshot()] == ["Hello"]

    def test_delete_error_still_clears_memory(self):
        store = Mock(spec=ConversationStore)
        store.delete.side_effect = DeleteError("busy")
        history = HistoryStore(store, retention_limit=4)
        history.append(Message.user("Hello"))

        history.clear()

        assert len(history) == 0

    def test_load_error_from_store_is_swallowed(self):
        store = Mock(spec=ConversationStore)
        store.load.side_effect = LoadError("bad")
        history = HistoryStore(store)

        history.load()

        assert len(history) == 0
