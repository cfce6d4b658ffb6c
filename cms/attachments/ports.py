from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from cms.attachments.collection import OwnedCollection


@dataclass
class Owner:
    """A content item together with one of its attachment collections."""

    id: int | None
    collection: OwnedCollection = field(default_factory=OwnedCollection)
    version: int = 1

    def __post_init__(self) -> None:
        if self.collection.owner_id is None:
            self.collection.owner_id = self.id


class FileStore(Protocol):
    def store(self, content: bytes, suggested_name: str) -> str: ...

    def delete(self, stored_path: str) -> None: ...


class PersistenceGateway(Protocol):
    """Loads and saves owners with their attachment rows.

    ``save`` must delete rows for records that are no longer in the
    collection; ``delete_owner`` must delete every attachment row of the
    owner.
    """

    def save(self, owner: Owner) -> Owner: ...

    def delete_owner(self, owner_id: int) -> None: ...

    def find_owner(self, owner_id: int) -> Owner | None: ...
