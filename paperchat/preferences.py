"""
Typed access to user-editable settings stored in the key-value store.
"""
from paperchat.config import DEFAULT_MAX_HISTORY_LENGTH, DEFAULT_MODEL, DEFAULT_SYSTEM_PROMPT
from paperchat.db.kv_store import KeyValueStore
from paperchat.errors import StorageError
from paperchat.logging_config import get_logger

logger = get_logger(__name__)

PREFIX = "paperchat"
API_KEY = f"{PREFIX}.apiKey"
MODEL = f"{PREFIX}.model"
MAX_HISTORY_LENGTH = f"{PREFIX}.maxHistoryLength"
SYSTEM_PROMPT = f"{PREFIX}.systemPrompt"


def history_key(conversation_id: str) -> str:
    return f"{PREFIX}.history.{conversation_id}"


class Preferences:
    """
    Settings facade over a KeyValueStore.

    Reads fall back to defaults when the key is missing, empty, or the store
    is unavailable; a broken store must not take the chat down.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    def _read(self, key: str) -> str:
        try:
            return self.store.get(key) or ""
        except StorageError as e:
            logger.warning(f"Preference {key} unavailable, using default: {e}")
            return ""

    @property
    def api_key(self) -> str:
        return self._read(API_KEY).strip()

    @api_key.setter
    def api_key(self, value: str) -> None:
        self.store.set(API_KEY, value.strip())

    @property
    def model(self) -> str:
        return self._read(MODEL) or DEFAULT_MODEL

    @model.setter
    def model(self, value: str) -> None:
        self.store.set(MODEL, value)

    @property
    def max_history_length(self) -> int:
        raw = self._read(MAX_HISTORY_LENGTH)
        try:
            value = int(raw)
        except ValueError:
            return DEFAULT_MAX_HISTORY_LENGTH
        # Non-positive lengths fall back to the default
        return value if value > 0 else DEFAULT_MAX_HISTORY_LENGTH

    @max_history_length.setter
    def max_history_length(self, value: int) -> None:
        self.store.set(MAX_HISTORY_LENGTH, str(int(value)))

    @property
    def system_prompt(self) -> str:
        return self._read(SYSTEM_PROMPT) or DEFAULT_SYSTEM_PROMPT

    @system_prompt.setter
    def system_prompt(self, value: str) -> None:
        self.store.set(SYSTEM_PROMPT, value)
