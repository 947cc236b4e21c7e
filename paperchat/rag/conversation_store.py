"""
Conversation Store for PaperChat.

Persists chat history per conversation (one conversation per set of papers).
"""
from datetime import datetime
from typing import Dict, List, Optional
import json

from paperchat.db.kv_store import KeyValueStore
from paperchat.errors import StorageError
from paperchat.logging_config import get_logger
from paperchat.models import Message
from paperchat.preferences import Preferences, history_key

logger = get_logger(__name__)

EXPORT_TITLE = "Paper Chat Conversation Export"


class ConversationStore:
    """
    Manages conversation history with a write-through cache.

    Handles:
    - Reads from memory first, then the durable store (populating memory)
    - Appends with oldest-first eviction beyond max_history_length
    - Writes to memory, then synchronously to the durable store
    - Plain-text transcript export

    Storage failures are logged and read as empty history; they never reach
    the user.
    """

    def __init__(
        self,
        store: KeyValueStore,
        preferences: Preferences,
        cache: Optional[Dict[str, List[Message]]] = None
    ):
        """Initialize with the durable store and an optional shared in-memory cache."""
        self.store = store
        self.preferences = preferences
        self.conversations: Dict[str, List[Message]] = cache if cache is not None else {}


    def get_history(self, conversation_id: Optional[str]) -> List[Message]:
        """Get message history, oldest first. Returns empty list for unknown or empty IDs."""
        if not conversation_id:
            return []

        if conversation_id in self.conversations:
            return list(self.conversations[conversation_id])

        history = self._load_from_storage(conversation_id)
        self.conversations[conversation_id] = history
        return list(history)


    def add_message(self, conversation_id: Optional[str], role: str, content: str) -> Optional[Message]:
        """Append a message stamped with the current time, trim to max length, persist."""
        if not conversation_id:
            return None

        history = self.get_history(conversation_id)
        message = Message(role=role, content=content)
        history.append(message)

        # Sliding window: drop oldest first
        max_length = self.preferences.max_history_length
        while len(history) > max_length:
            history.pop(0)

        self.conversations[conversation_id] = history
        self._save_to_storage(conversation_id, history)
        return message


    def clear_history(self, conversation_id: Optional[str]) -> None:
        """Remove in-memory and durable history. No error if already empty."""
        if not conversation_id:
            return

        self.conversations.pop(conversation_id, None)
        try:
            self.store.clear(history_key(conversation_id))
        except StorageError as e:
            logger.error(f"Failed to clear history for {conversation_id}: {e}")


    def export_as_text(self, conversation_id: Optional[str]) -> str:
        """Render the conversation as a readable transcript."""
        history = self.get_history(conversation_id)
        text = f"{EXPORT_TITLE}\n"
        text += "=" * 40 + "\n\n"

        for msg in history:
            role = "You" if msg.role == "user" else "Assistant"
            text += f"[{role}] ({format_timestamp(msg.timestamp)})\n"
            text += msg.content + "\n\n"

        return text


    def get_stats(self, conversation_id: Optional[str]) -> dict:
        """Get summary statistics for a conversation."""
        history = self.get_history(conversation_id)
        return {
            "message_count": len(history),
            "user_messages": sum(1 for m in history if m.role == "user"),
            "assistant_messages": sum(1 for m in history if m.role == "assistant"),
            "first_message": history[0].timestamp if history else None,
            "last_message": history[-1].timestamp if history else None,
        }


    def _load_from_storage(self, conversation_id: str) -> List[Message]:
        try:
            data = self.store.get(history_key(conversation_id))
            if data:
                return [Message.from_dict(m) for m in json.loads(data)]
        except (StorageError, ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Failed to load history for {conversation_id}: {e}")
        return []


    def _save_to_storage(self, conversation_id: str, history: List[Message]) -> None:
        try:
            self.store.set(history_key(conversation_id), json.dumps([m.to_dict() for m in history]))
        except StorageError as e:
            logger.error(f"Failed to save history for {conversation_id}: {e}")


def format_timestamp(timestamp_ms: int) -> str:
    """Local date and time in the user's locale format."""
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%x %X")
