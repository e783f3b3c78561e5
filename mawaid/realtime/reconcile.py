"""Upsert-by-id record sets for local projections of remote rows."""

from collections.abc import Callable, Iterable, Iterator
from typing import Any, Generic, Protocol, TypeVar
from uuid import UUID


class Identified(Protocol):
    id: UUID


T = TypeVar("T", bound=Identified)


class RecordSet(Generic[T]):
    """
    Records keyed by id, iterated in sort order.

    When a version function is given, ``upsert`` discards a record whose
    version is lower than the one already held. Equal versions overwrite, so
    re-applying the same event is a no-op.
    """

    def __init__(
        self,
        sort_key: Callable[[T], Any] | None = None,
        version: Callable[[T], Any] | None = None,
        reverse: bool = False,
    ):
        self._records: dict[str, T] = {}
        self._sort_key = sort_key
        self._version = version
        self._reverse = reverse

    def replace_all(self, records: Iterable[T]) -> None:
        """Drop everything held and take ``records`` as the new state."""
        self._records = {str(record.id): record for record in records}

    def upsert(self, record: T) -> bool:
        """
        Insert or overwrite a record by id.

        Returns:
            False if the record was discarded as stale
        """
        key = str(record.id)
        held = self._records.get(key)
        if held is not None and self._version is not None:
            if self._version(record) < self._version(held):
                return False
        self._records[key] = record
        return True

    def remove(self, record_id: UUID | str) -> T | None:
        """Remove a record; returns it, or None when it was not held."""
        return self._records.pop(str(record_id), None)

    def get(self, record_id: UUID | str) -> T | None:
        return self._records.get(str(record_id))

    def values(self) -> list[T]:
        """Held records in sort order."""
        records = list(self._records.values())
        if self._sort_key is not None:
            records.sort(key=self._sort_key, reverse=self._reverse)
        return records

    def __iter__(self) -> Iterator[T]:
        return iter(self.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, record_id: object) -> bool:
        return str(record_id) in self._records
