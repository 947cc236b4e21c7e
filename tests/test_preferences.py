"""
Tests for the key-value stores and the Preferences facade.
"""
import unittest
from unittest.mock import MagicMock

from sqlalchemy.exc import OperationalError

from paperchat.config import DEFAULT_MAX_HISTORY_LENGTH, DEFAULT_MODEL, DEFAULT_SYSTEM_PROMPT
from paperchat.db.database import make_engine, make_session_factory
from paperchat.db.init_db import init_db
from paperchat.db.kv_store import InMemoryKeyValueStore, SqlKeyValueStore
from paperchat.errors import StorageError
from paperchat.preferences import API_KEY, MAX_HISTORY_LENGTH, Preferences, history_key
from tests.fakes import BrokenStore


class TestSqlKeyValueStore(unittest.TestCase):

    def setUp(self):
        engine = init_db(make_engine("sqlite://"))
        self.store = SqlKeyValueStore(make_session_factory(engine))

    def test_missing_key(self):
        assert self.store.get("paperchat.nothing") is None

    def test_set_and_overwrite(self):
        self.store.set("paperchat.model", "gemini-2.0-flash")
        self.store.set("paperchat.model", "gemini-2.5-flash")

        assert self.store.get("paperchat.model") == "gemini-2.5-flash"

    def test_clear(self):
        self.store.set("paperchat.model", "gemini-2.0-flash")

        self.store.clear("paperchat.model")
        self.store.clear("paperchat.model")

        assert self.store.get("paperchat.model") is None

    def test_database_errors_become_storage_errors(self):
        factory = MagicMock(side_effect=OperationalError("SELECT", {}, Exception("database is locked")))
        store = SqlKeyValueStore(factory)

        with self.assertRaises(StorageError):
            store.get("paperchat.model")
        with self.assertRaises(StorageError):
            store.set("paperchat.model", "x")
        with self.assertRaises(StorageError):
            store.clear("paperchat.model")


class TestPreferences(unittest.TestCase):

    def setUp(self):
        self.kv = InMemoryKeyValueStore()
        self.preferences = Preferences(self.kv)

    def test_defaults(self):
        assert self.preferences.api_key == ""
        assert self.preferences.model == DEFAULT_MODEL
        assert self.preferences.max_history_length == DEFAULT_MAX_HISTORY_LENGTH
        assert self.preferences.system_prompt == DEFAULT_SYSTEM_PROMPT

    def test_api_key_is_trimmed(self):
        self.preferences.api_key = "  AIzaKey  "

        assert self.kv.values[API_KEY] == "AIzaKey"
        assert self.preferences.api_key == "AIzaKey"

    def test_setters_round_trip(self):
        self.preferences.model = "gemini-2.5-flash"
        self.preferences.max_history_length = 6
        self.preferences.system_prompt = "Answer in French."

        assert self.preferences.model == "gemini-2.5-flash"
        assert self.preferences.max_history_length == 6
        assert self.preferences.system_prompt == "Answer in French."

    def test_invalid_max_history_length_falls_back(self):
        self.kv.set(MAX_HISTORY_LENGTH, "0")
        assert self.preferences.max_history_length == DEFAULT_MAX_HISTORY_LENGTH

        self.kv.set(MAX_HISTORY_LENGTH, "-3")
        assert self.preferences.max_history_length == DEFAULT_MAX_HISTORY_LENGTH

        self.kv.set(MAX_HISTORY_LENGTH, "lots")
        assert self.preferences.max_history_length == DEFAULT_MAX_HISTORY_LENGTH

    def test_unavailable_store_reads_defaults(self):
        preferences = Preferences(BrokenStore())

        assert preferences.api_key == ""
        assert preferences.model == DEFAULT_MODEL
        assert preferences.max_history_length == DEFAULT_MAX_HISTORY_LENGTH

    def test_writes_to_unavailable_store_raise(self):
        with self.assertRaises(StorageError):
            Preferences(BrokenStore()).model = "gemini-2.5-flash"

    def test_history_key(self):
        assert history_key("3_5") == "paperchat.history.3_5"


if __name__ == "__main__":
    unittest.main()
