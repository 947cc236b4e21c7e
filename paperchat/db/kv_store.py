"""
Durable key-value storage for settings and conversation logs.

All values are strings; callers JSON-encode structured data. Implementations
raise StorageError on read/write failures.
"""
from abc import ABC, abstractmethod
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from paperchat.db.models import Preference
from paperchat.errors import StorageError
from paperchat.logging_config import get_logger

logger = get_logger(__name__)


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    def clear(self, key: str) -> None: ...


class SqlKeyValueStore(KeyValueStore):
    """KeyValueStore backed by the preferences table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        try:
            with self.session_factory() as session:
                row = session.get(Preference, key)
                return row.value if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to read key {key}: {e}")
            raise StorageError(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        try:
            with self.session_factory() as session:
                row = session.get(Preference, key)
                if row is None:
                    session.add(Preference(key=key, value=value))
                else:
                    row.value = value
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to write key {key}: {e}")
            raise StorageError(f"Failed to write {key}: {e}") from e

    def clear(self, key: str) -> None:
        try:
            with self.session_factory() as session:
                row = session.get(Preference, key)
                if row is not None:
                    session.delete(row)
                    session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to clear key {key}: {e}")
            raise StorageError(f"Failed to clear {key}: {e}") from e


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local store, for ephemeral sessions and tests."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value

    def clear(self, key: str) -> None:
        self.values.pop(key, None)
