from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any


class OptionStore(ABC):
    """Contract for the process-wide key-value settings store.

    A missing key and a key holding ``False`` are distinct states; ``get``
    only returns ``default`` for the former.
    """

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for ``key``, or ``default`` when absent."""

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``. Returns True when a value was removed."""

    @abstractmethod
    def delete_all(self) -> int:
        """Remove every key. Returns the number of keys removed."""


class AnnotationStore(ABC):
    """Contract for per-entry derived annotations."""

    @abstractmethod
    def get_annotation(self, entry_id: int, key: str) -> str | None:
        """Return the annotation value, or None when absent."""

    @abstractmethod
    def set_annotation(self, entry_id: int, key: str, value: str) -> None:
        """Create or overwrite one annotation on an entry."""

    @abstractmethod
    def delete_annotation(self, entry_id: int, key: str) -> None:
        """Remove one annotation. Removing an absent annotation is a no-op."""

    @abstractmethod
    def delete_annotations(self, entry_id: int, keys: Sequence[str]) -> None:
        """Remove several annotations from one entry in a single operation."""

    @abstractmethod
    def delete_key_everywhere(self, key: str) -> int:
        """Remove ``key`` from every entry. Returns the number of rows removed."""
