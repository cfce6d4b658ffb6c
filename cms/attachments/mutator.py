from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field

from cms.attachments.collection import CollectionSnapshot
from cms.attachments.errors import (
    CleanupWarning,
    InvalidAttachment,
    LimitExceeded,
    NotFound,
    PersistenceFailure,
    StorageFailure,
)
from cms.attachments.ports import FileStore, Owner, PersistenceGateway
from cms.attachments.records import AttachmentRecord, Asset

logger = logging.getLogger(__name__)


@dataclass
class MutationResult:
    owner: Owner
    records: list[AttachmentRecord] = field(default_factory=list)
    warnings: list[CleanupWarning] = field(default_factory=list)


class CollectionMutator:
    """Applies collection changes together with their byte and row side effects.

    Bytes are written before the owner is saved and removed after it is
    saved, so a failure always has a well-defined point to roll back to.
    One caller per owner at a time; there is no locking here.
    """

    def __init__(
        self,
        file_store: FileStore,
        gateway: PersistenceGateway,
        *,
        max_per_owner: int | None = None,
        url_builder: Callable[[str], str] | None = None,
    ) -> None:
        self.file_store = file_store
        self.gateway = gateway
        self.max_per_owner = max_per_owner
        self.url_builder = url_builder

    def attach(self, owner: Owner, assets: Iterable[Asset]) -> MutationResult:
        pending = list(assets)
        if not pending:
            raise InvalidAttachment("no assets to attach")
        current = len(owner.collection)
        if self.max_per_owner is not None and current + len(pending) > self.max_per_owner:
            raise LimitExceeded(current, len(pending), self.max_per_owner)

        stored: list[str] = []
        records: list[AttachmentRecord] = []
        for asset in pending:
            stored_path: str | None = None
            if asset.content is not None:
                try:
                    stored_path = self.file_store.store(asset.content, asset.filename)
                except Exception as err:
                    logger.error(
                        "Storing attachment bytes failed",
                        extra={
                            "event": "attachments",
                            "owner_id": owner.id,
                            "asset": asset.filename,
                            "error": str(err)[:200],
                        },
                    )
                    self._discard(stored)
                    raise StorageFailure(f"failed to store {asset.filename}") from err
                stored.append(stored_path)
            records.append(self._build_record(asset, stored_path))

        snapshot = owner.collection.snapshot()
        owner.collection.add_all(records)
        self._save(owner, snapshot, stored)
        logger.info(
            "Attachments added",
            extra={"event": "attachments", "owner_id": owner.id, "count": len(records)},
        )
        return MutationResult(owner=owner, records=records)

    def detach(self, owner: Owner, record_id: int) -> MutationResult:
        record = owner.collection.get(record_id)
        snapshot = owner.collection.snapshot()
        if record is None or not owner.collection.remove_by_id(record_id):
            raise NotFound(record_id)

        self._save(owner, snapshot)
        warnings = self._delete_bytes(owner, [record])
        logger.info(
            "Attachment removed",
            extra={"event": "attachments", "owner_id": owner.id, "record_id": record_id},
        )
        return MutationResult(owner=owner, records=[record], warnings=warnings)

    def promote(self, owner: Owner, record_id: int) -> MutationResult:
        snapshot = owner.collection.snapshot()
        record = owner.collection.set_primary_by_id(record_id)
        self._save(owner, snapshot)
        return MutationResult(owner=owner, records=[record])

    def reorder(self, owner: Owner, ids_in_order: Sequence[int]) -> MutationResult:
        snapshot = owner.collection.snapshot()
        records = owner.collection.reorder(ids_in_order)
        self._save(owner, snapshot)
        return MutationResult(owner=owner, records=records)

    def purge(
        self,
        owner: Owner,
        *,
        delete_owner: bool = False,
        cascaded: Iterable[AttachmentRecord] = (),
    ) -> MutationResult:
        """Empty the collection, or delete the owner with all of its attachments.

        ``cascaded`` are records of the owner's other collections that the
        gateway removes together with the owner row. Their bytes are deleted
        after the owner is gone, like the members of this collection.
        """
        cascade = list(cascaded)
        if cascade and not delete_owner:
            raise InvalidAttachment("cascaded records require delete_owner=True")
        snapshot = owner.collection.snapshot()
        members = owner.collection.clear()

        if delete_owner:
            self._delete_owner(owner, snapshot)
        else:
            self._save(owner, snapshot)

        members.extend(cascade)
        warnings = self._delete_bytes(owner, members)
        logger.info(
            "Attachments purged",
            extra={
                "event": "attachments",
                "owner_id": owner.id,
                "count": len(members),
                "owner_deleted": delete_owner,
            },
        )
        return MutationResult(owner=owner, records=members, warnings=warnings)

    def _build_record(self, asset: Asset, stored_path: str | None) -> AttachmentRecord:
        url = asset.url or ""
        if not url and stored_path is not None:
            url = self.url_builder(stored_path) if self.url_builder else stored_path
        return AttachmentRecord(
            media_kind=asset.kind,
            stored_path=stored_path,
            url=url,
            original_filename=asset.filename,
            mime_type=asset.mime_type,
            size_bytes=asset.size_bytes,
            title=asset.title,
            attributes=dict(asset.attributes),
        )

    def _save(
        self,
        owner: Owner,
        snapshot: CollectionSnapshot,
        stored: Sequence[str] = (),
    ) -> None:
        try:
            self.gateway.save(owner)
        except PersistenceFailure:
            owner.collection.restore(snapshot)
            self._discard(stored)
            raise
        except Exception as err:
            owner.collection.restore(snapshot)
            self._discard(stored)
            logger.error(
                "Saving owner failed",
                extra={"event": "attachments", "owner_id": owner.id, "error": str(err)[:200]},
            )
            raise PersistenceFailure(f"failed to save owner {owner.id}") from err

    def _delete_owner(self, owner: Owner, snapshot: CollectionSnapshot) -> None:
        if owner.id is None:
            owner.collection.restore(snapshot)
            raise PersistenceFailure("owner must be created before it can be deleted")
        try:
            self.gateway.delete_owner(owner.id)
        except PersistenceFailure:
            owner.collection.restore(snapshot)
            raise
        except Exception as err:
            owner.collection.restore(snapshot)
            logger.error(
                "Deleting owner failed",
                extra={"event": "attachments", "owner_id": owner.id, "error": str(err)[:200]},
            )
            raise PersistenceFailure(f"failed to delete owner {owner.id}") from err

    def _discard(self, stored_paths: Iterable[str]) -> None:
        """Roll back bytes written during a failed call."""
        for stored_path in stored_paths:
            try:
                self.file_store.delete(stored_path)
            except Exception as err:
                logger.warning(
                    "Rollback of stored bytes failed",
                    extra={"event": "attachments", "path": stored_path, "error": str(err)[:200]},
                )

    def _delete_bytes(
        self,
        owner: Owner,
        records: Iterable[AttachmentRecord],
    ) -> list[CleanupWarning]:
        warnings: list[CleanupWarning] = []
        for record in records:
            if record.stored_path is None:
                continue
            try:
                self.file_store.delete(record.stored_path)
            except Exception as err:
                warning = CleanupWarning(stored_path=record.stored_path, error=str(err))
                logger.warning(
                    "Orphaned attachment bytes left behind",
                    extra={
                        "event": "attachments",
                        "owner_id": owner.id,
                        "path": record.stored_path,
                        "error": str(err)[:200],
                    },
                )
                warnings.append(warning)
        return warnings
