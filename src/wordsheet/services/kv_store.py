"""Durable key-value store for job state."""
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from wordsheet.models.models import JobState


class KeyValueStore(ABC):
    """Small string key-value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Get a value or None when absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Set a value."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete a value; deleting a missing key is a no-op."""


class MemoryKeyValueStore(KeyValueStore):
    """Key-value store kept in a dict."""

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self._values = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = str(value)

    def delete(self, key: str) -> None:
        self._values.pop(key, None)


class SqlKeyValueStore(KeyValueStore):
    """Key-value store persisted in the ``job_state`` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        with self.session_factory() as db:
            state = db.get(JobState, key)
            return state.value if state else None

    def set(self, key: str, value: str) -> None:
        with self.session_factory() as db:
            state = db.get(JobState, key)
            if state is None:
                db.add(JobState(key=key, value=str(value)))
            else:
                state.value = str(value)
            db.commit()

    def delete(self, key: str) -> None:
        with self.session_factory() as db:
            state = db.get(JobState, key)
            if state is not None:
                db.delete(state)
                db.commit()
