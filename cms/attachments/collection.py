from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from cms.attachments.errors import NotOwned
from cms.attachments.records import AttachmentRecord


@dataclass(frozen=True)
class _RecordState:
    record: AttachmentRecord
    sort_key: int | None
    is_primary: bool
    owner_id: int | None


@dataclass(frozen=True)
class CollectionSnapshot:
    members: tuple[_RecordState, ...]


class OwnedCollection:
    """Ordered attachments of one owner with at most one primary member.

    The list is kept in collection order; ``sort_key`` values mirror that
    order but are not required to be contiguous or unique.
    """

    def __init__(self, owner_id: int | None = None) -> None:
        self.owner_id = owner_id
        self._records: list[AttachmentRecord] = []

    @classmethod
    def load(
        cls,
        owner_id: int | None,
        records: Iterable[AttachmentRecord],
    ) -> OwnedCollection:
        """Rebuild a collection from persisted rows without applying add rules.

        Stored primary flags are repaired: the first flagged row is kept, or
        the first row when none is flagged.
        """
        collection = cls(owner_id)
        ordered = sorted(
            records,
            key=lambda r: (
                r.sort_key if r.sort_key is not None else 0,
                r.id if r.id is not None else 0,
            ),
        )
        for record in ordered:
            record.owner_id = owner_id
            collection._records.append(record)
        collection._normalize_primary()
        return collection

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[AttachmentRecord]:
        return iter(list(self._records))

    def __contains__(self, record: object) -> bool:
        return any(member is record or member == record for member in self._records)

    @property
    def records(self) -> list[AttachmentRecord]:
        return list(self._records)

    def ids(self) -> list[int | None]:
        return [record.id for record in self._records]

    def get(self, record_id: int | None) -> AttachmentRecord | None:
        if record_id is None:
            return None
        return next((r for r in self._records if r.id == record_id), None)

    def primary_count(self) -> int:
        return sum(1 for record in self._records if record.is_primary)

    def _next_sort_key(self) -> int:
        keys = [r.sort_key for r in self._records if r.sort_key is not None]
        return max(keys) + 1 if keys else 0

    def _index_of(self, record: AttachmentRecord) -> int | None:
        for index, member in enumerate(self._records):
            if member is record or member == record:
                return index
        return None

    def add(self, record: AttachmentRecord) -> AttachmentRecord:
        if record.owner_id is not None and record.owner_id != self.owner_id:
            raise NotOwned(record.id, self.owner_id)
        if record in self:
            return record

        was_empty = not self._records
        if record.sort_key is None:
            record.sort_key = self._next_sort_key()
        record.owner_id = self.owner_id

        if was_empty:
            # First attachment becomes the cover.
            record.is_primary = True
        elif record.is_primary:
            self._clear_primary()
        self._records.append(record)
        return record

    def add_all(self, records: Iterable[AttachmentRecord]) -> list[AttachmentRecord]:
        return [self.add(record) for record in records]

    def remove(self, record: AttachmentRecord) -> bool:
        index = self._index_of(record)
        if index is None:
            return False

        removed = self._records.pop(index)
        was_primary = removed.is_primary
        removed.detach()

        if was_primary and self._records:
            self._clear_primary()
            self._records[0].is_primary = True
        self._normalize_primary()
        return True

    def remove_by_id(self, record_id: int | None) -> bool:
        record = self.get(record_id)
        if record is None:
            return False
        return self.remove(record)

    def _clear_primary(self) -> None:
        for member in self._records:
            member.is_primary = False

    def _normalize_primary(self) -> None:
        if not self._records:
            return
        keeper = next((r for r in self._records if r.is_primary), self._records[0])
        for member in self._records:
            member.is_primary = member is keeper

    def set_primary(self, record: AttachmentRecord) -> AttachmentRecord:
        index = self._index_of(record)
        if index is None:
            raise NotOwned(record.id, self.owner_id)
        member = self._records[index]
        if member.is_primary and self.primary_count() == 1:
            return member
        self._clear_primary()
        member.is_primary = True
        return member

    def set_primary_by_id(self, record_id: int | None) -> AttachmentRecord:
        record = self.get(record_id)
        if record is None:
            raise NotOwned(record_id, self.owner_id)
        return self.set_primary(record)

    def get_primary(self) -> AttachmentRecord | None:
        if not self._records:
            return None
        return next((r for r in self._records if r.is_primary), self._records[0])

    def reorder(self, ids_in_order: Sequence[int]) -> list[AttachmentRecord]:
        ordered: list[AttachmentRecord] = []
        seen: set[int] = set()
        for record_id in ids_in_order:
            if record_id in seen:
                continue
            record = self.get(record_id)
            if record is None:
                raise NotOwned(record_id, self.owner_id)
            seen.add(record_id)
            ordered.append(record)

        rest = [r for r in self._records if r.id is None or r.id not in seen]
        self._records = ordered + rest
        for position, record in enumerate(self._records):
            record.sort_key = position
        return self.records

    def clear(self) -> list[AttachmentRecord]:
        members = self._records
        self._records = []
        for record in members:
            record.detach()
        return members

    def snapshot(self) -> CollectionSnapshot:
        return CollectionSnapshot(
            members=tuple(self._capture(r) for r in self._records),
        )

    def restore(self, snapshot: CollectionSnapshot) -> None:
        kept = {id(state.record) for state in snapshot.members}
        for record in self._records:
            if id(record) not in kept:
                record.detach()
        for state in snapshot.members:
            state.record.sort_key = state.sort_key
            state.record.is_primary = state.is_primary
            state.record.owner_id = state.owner_id
        self._records = [state.record for state in snapshot.members]

    @staticmethod
    def _capture(record: AttachmentRecord) -> _RecordState:
        return _RecordState(
            record=record,
            sort_key=record.sort_key,
            is_primary=record.is_primary,
            owner_id=record.owner_id,
        )

    def __repr__(self) -> str:
        members = ", ".join(
            f"{r.id}{'*' if r.is_primary else ''}" for r in self._records
        )
        return f"<OwnedCollection owner={self.owner_id} [{members}]>"
