from __future__ import annotations

from dataclasses import dataclass


class AttachmentError(Exception):
    """Base class for attachment collection failures."""


class NotFound(AttachmentError):
    def __init__(self, record_id: int | None) -> None:
        super().__init__(f"attachment {record_id} not found")
        self.record_id = record_id


class NotOwned(AttachmentError):
    def __init__(self, record_id: int | None, owner_id: int | None) -> None:
        super().__init__(
            f"attachment {record_id} does not belong to owner {owner_id}"
        )
        self.record_id = record_id
        self.owner_id = owner_id


class StorageFailure(AttachmentError):
    pass


class PersistenceFailure(AttachmentError):
    pass


class StaleOwner(PersistenceFailure):
    def __init__(self, owner_id: int | None, expected: int, actual: int) -> None:
        super().__init__(
            f"owner {owner_id} was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.owner_id = owner_id
        self.expected = expected
        self.actual = actual


class LimitExceeded(AttachmentError):
    def __init__(self, current: int, adding: int, limit: int) -> None:
        super().__init__(
            f"attachment limit exceeded: current {current}, adding {adding}, "
            f"maximum {limit}"
        )
        self.current = current
        self.adding = adding
        self.limit = limit


class InvalidAttachment(AttachmentError):
    pass


@dataclass(frozen=True)
class CleanupWarning:
    """Bytes that could not be removed after a durable detach or purge."""

    stored_path: str
    error: str

    def __str__(self) -> str:
        return f"{self.stored_path}: {self.error}"
