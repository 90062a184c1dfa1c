"""Business logic for trash inspection and reconciliation."""

import logging
from dataclasses import dataclass, field
from typing import final

from server.apps.files.exceptions import FileStoreError
from server.apps.files.infrastructure.metadata import build_trash_name
from server.apps.files.infrastructure.records import MetadataStore
from server.apps.files.infrastructure.storage import BlobStore
from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)


@final
@dataclass
class ReconcileReport:
    """Outcome of a reconciliation pass."""

    stranded: list[str] = field(default_factory=list)
    moved: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def generate_trash_name(record: FileRecord) -> str:
    """Trash name of a soft-deleted record.

    Args:
        record: Record with ``deleted_at`` set.

    Returns:
        Trash name (e.g., '20260201090000_20260131143052_report.pdf').

    Raises:
        ValueError: If the record was never deleted.
    """
    if record.deleted_at is None:
        raise ValueError(f'Record {record.pk} has no deletion time')
    return build_trash_name(record.deleted_at, record.stored_name)


def list_trash(metadata_store: MetadataStore) -> list[FileRecord]:
    """List soft-deleted records.

    Args:
        metadata_store: Store to query.

    Returns:
        Deleted records, most recently deleted first.
    """
    return metadata_store.find_deleted()


def find_stranded_records(
    blob_store: BlobStore,
    metadata_store: MetadataStore,
    limit: int | None = None,
) -> list[FileRecord]:
    """Find deleted records whose blob is still in the upload directory.

    These are left behind by a crash between flagging and moving, or by
    a partial soft delete. Every deleted record is inspected, oldest
    deletion first, until ``limit`` stranded ones are found.

    Args:
        blob_store: Store holding the blobs.
        metadata_store: Store holding the records.
        limit: Maximum number of stranded records to return.

    Returns:
        Stranded records, oldest deletion first.
    """
    stranded: list[FileRecord] = []
    if limit is not None and limit <= 0:
        return stranded

    for record in metadata_store.iter_deleted():
        if not blob_store.exists(record.stored_name):
            continue
        stranded.append(record)
        if limit is not None and len(stranded) >= limit:
            break
    return stranded


def reconcile_record(blob_store: BlobStore, record: FileRecord) -> str:
    """Finish the trash move of a stranded record.

    Args:
        blob_store: Store holding the blob.
        record: Deleted record whose blob is in the upload directory.

    Returns:
        Trash name the blob was moved to.

    Raises:
        FileStoreError: If the move fails again.
    """
    trash_name = generate_trash_name(record)
    blob_store.move_to_trash(record.stored_name, trash_name)
    logger.info(
        'Reconciled record %d: %s -> %s',
        record.pk,
        record.stored_name,
        trash_name,
    )
    return trash_name


def reconcile_trash(
    blob_store: BlobStore,
    metadata_store: MetadataStore,
    batch_size: int | None = None,
    *,
    dry_run: bool = False,
) -> ReconcileReport:
    """Move every stranded blob into trash.

    A failure on one record is logged and recorded; the pass continues
    with the remaining records.

    Args:
        blob_store: Store holding the blobs.
        metadata_store: Store holding the records.
        batch_size: Maximum number of stranded records to handle.
        dry_run: Report stranded records without moving anything.

    Returns:
        ReconcileReport listing stored names by outcome.
    """
    report = ReconcileReport()

    for record in find_stranded_records(blob_store, metadata_store, batch_size):
        report.stranded.append(record.stored_name)
        if dry_run:
            continue

        try:
            reconcile_record(blob_store, record)
        except FileStoreError:
            logger.exception(
                'Failed to reconcile record %d: %s',
                record.pk,
                record.stored_name,
            )
            report.failed.append(record.stored_name)
        else:
            report.moved.append(record.stored_name)

    logger.info(
        'Trash reconciliation: %d stranded, %d moved, %d failed',
        len(report.stranded),
        len(report.moved),
        len(report.failed),
    )
    return report
