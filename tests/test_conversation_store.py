"""
Tests for ConversationStore history, trimming, persistence and export.
"""
import json
import unittest
from unittest.mock import MagicMock

from paperchat.db.database import make_engine, make_session_factory
from paperchat.db.init_db import init_db
from paperchat.db.kv_store import InMemoryKeyValueStore, KeyValueStore, SqlKeyValueStore
from paperchat.errors import StorageError
from paperchat.preferences import Preferences, history_key
from paperchat.rag.conversation_store import EXPORT_TITLE, ConversationStore
from tests.fakes import BrokenStore


class TestConversationStore(unittest.TestCase):
    """Test suite for ConversationStore over the in-memory key-value store."""

    def setUp(self):
        self.kv = InMemoryKeyValueStore()
        self.preferences = Preferences(self.kv)
        self.store = ConversationStore(self.kv, self.preferences)

    def test_add_and_get(self):
        """Test messages come back oldest first with their roles."""
        self.store.add_message("1_2", "user", "What is the main finding?")
        self.store.add_message("1_2", "assistant", "On page 4 the authors show...")

        history = self.store.get_history("1_2")
        assert [m.role for m in history] == ["user", "assistant"]
        assert history[0].content == "What is the main finding?"
        assert history[0].timestamp > 0

    def test_add_message_returns_message(self):
        message = self.store.add_message("1", "user", "Hello")

        assert message.role == "user"
        assert message.content == "Hello"

    def test_length_law(self):
        """Test history length is min(n, max_history_length) after n adds."""
        self.preferences.max_history_length = 4
        for n in range(1, 8):
            self.store.add_message("42", "user", f"message {n}")
            assert len(self.store.get_history("42")) == min(n, 4)

    def test_oldest_messages_evicted_first(self):
        self.preferences.max_history_length = 3
        for n in range(5):
            self.store.add_message("42", "user", f"message {n}")

        contents = [m.content for m in self.store.get_history("42")]
        assert contents == ["message 2", "message 3", "message 4"]

    def test_empty_or_unknown_id(self):
        assert self.store.get_history("") == []
        assert self.store.get_history(None) == []
        assert self.store.get_history("never-used") == []
        assert self.store.add_message("", "user", "lost") is None
        assert self.kv.values == {}

    def test_get_history_returns_copy(self):
        self.store.add_message("7", "user", "Hello")

        history = self.store.get_history("7")
        history.clear()

        assert len(self.store.get_history("7")) == 1

    def test_history_persisted_as_json(self):
        self.store.add_message("7", "user", "Hello")

        data = json.loads(self.kv.values[history_key("7")])
        assert data[0]["role"] == "user"
        assert data[0]["content"] == "Hello"
        assert isinstance(data[0]["timestamp"], int)

    def test_history_loaded_by_new_instance(self):
        """Test a fresh store (new session) reads history written by an earlier one."""
        self.store.add_message("7", "user", "Hello")
        self.store.add_message("7", "assistant", "Hi")

        reloaded = ConversationStore(self.kv, self.preferences)

        assert [m.content for m in reloaded.get_history("7")] == ["Hello", "Hi"]

    def test_clear_round_trip(self):
        self.store.add_message("7", "user", "Hello")

        self.store.clear_history("7")

        assert self.store.get_history("7") == []
        assert history_key("7") not in self.kv.values

    def test_clear_empty_conversation(self):
        self.store.clear_history("nothing-here")
        self.store.clear_history(None)

        assert self.store.get_history("nothing-here") == []

    def test_conversations_are_independent(self):
        self.store.add_message("1", "user", "first")
        self.store.add_message("1_2", "user", "second")

        assert len(self.store.get_history("1")) == 1
        assert len(self.store.get_history("1_2")) == 1

    def test_corrupt_stored_history_reads_empty(self):
        self.kv.set(history_key("9"), "{not json")

        assert self.store.get_history("9") == []

    def test_export_format(self):
        self.store.add_message("7", "user", "Summarize it")
        self.store.add_message("7", "assistant", "It is about metformin.")

        text = self.store.export_as_text("7")

        assert text.startswith(f"{EXPORT_TITLE}\n" + "=" * 40 + "\n\n")
        assert "[You] (" in text
        assert "Summarize it\n\n" in text
        assert "[Assistant] (" in text
        assert text.endswith("It is about metformin.\n\n")

    def test_export_empty_conversation(self):
        assert self.store.export_as_text("7") == f"{EXPORT_TITLE}\n" + "=" * 40 + "\n\n"

    def test_stats(self):
        self.store.add_message("7", "user", "Q1")
        self.store.add_message("7", "assistant", "A1")
        self.store.add_message("7", "user", "Q2")

        stats = self.store.get_stats("7")
        history = self.store.get_history("7")

        assert stats["message_count"] == 3
        assert stats["user_messages"] == 2
        assert stats["assistant_messages"] == 1
        assert stats["first_message"] == history[0].timestamp
        assert stats["last_message"] == history[-1].timestamp

    def test_stats_empty(self):
        stats = self.store.get_stats("7")

        assert stats["message_count"] == 0
        assert stats["first_message"] is None
        assert stats["last_message"] is None


class TestConversationStoreStorageFailures(unittest.TestCase):
    """Storage failures are logged and never reach the caller."""

    def test_unavailable_store_reads_empty(self):
        store = ConversationStore(BrokenStore(), Preferences(InMemoryKeyValueStore()))

        assert store.get_history("7") == []

    def test_failed_save_keeps_memory_copy(self):
        kv = MagicMock(spec=KeyValueStore)
        kv.get.return_value = None
        kv.set.side_effect = StorageError("disk full")
        store = ConversationStore(kv, Preferences(InMemoryKeyValueStore()))

        message = store.add_message("7", "user", "Hello")

        assert message is not None
        assert [m.content for m in store.get_history("7")] == ["Hello"]

    def test_failed_clear_still_clears_memory(self):
        kv = InMemoryKeyValueStore()
        store = ConversationStore(kv, Preferences(kv))
        store.add_message("7", "user", "Hello")

        store.store = BrokenStore()
        store.clear_history("7")

        assert "7" not in store.conversations


class TestConversationStoreWithDatabase(unittest.TestCase):
    """ConversationStore over the SQLite-backed key-value store."""

    def setUp(self):
        engine = init_db(make_engine("sqlite://"))
        self.kv = SqlKeyValueStore(make_session_factory(engine))
        self.preferences = Preferences(self.kv)

    def test_round_trip_through_database(self):
        ConversationStore(self.kv, self.preferences).add_message("3_5", "user", "Compare the two papers")

        reloaded = ConversationStore(self.kv, self.preferences)

        history = reloaded.get_history("3_5")
        assert len(history) == 1
        assert history[0].content == "Compare the two papers"

    def test_clear_removes_row(self):
        store = ConversationStore(self.kv, self.preferences)
        store.add_message("3_5", "user", "Hello")

        store.clear_history("3_5")

        assert self.kv.get(history_key("3_5")) is None


if __name__ == "__main__":
    unittest.main()
