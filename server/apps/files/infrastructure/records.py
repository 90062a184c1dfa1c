"""Metadata store backed by the FileRecord model."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Final

from django.db import DatabaseError, OperationalError

from server.apps.files.exceptions import (
    MetadataStoreError,
    RecordNotFoundError,
    StoreTimeoutError,
)
from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)

# Driver messages that mean the deadline passed rather than a hard failure
_TIMEOUT_MARKERS: Final = (
    'locked',
    'timeout',
    'timed out',
    'statement_timeout',
    'canceling statement',
)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    """Map database errors onto the files app taxonomy.

    Args:
        operation: Name of the store operation, for logging.

    Raises:
        StoreTimeoutError: If the database gave up waiting.
        MetadataStoreError: For any other database failure.
    """
    try:
        yield
    except OperationalError as error:
        message = str(error).lower()
        if any(marker in message for marker in _TIMEOUT_MARKERS):
            logger.exception('Metadata store timed out during %s', operation)
            raise StoreTimeoutError(
                f'Metadata store timed out during {operation}',
            ) from error
        logger.exception('Metadata store failed during %s', operation)
        raise MetadataStoreError(
            f'Metadata store failed during {operation}',
        ) from error
    except DatabaseError as error:
        logger.exception('Metadata store failed during %s', operation)
        raise MetadataStoreError(
            f'Metadata store failed during {operation}',
        ) from error


class MetadataStore:
    """Insert, find and flag FileRecord rows.

    Every write is a single statement, so concurrent callers need no
    locking of their own.
    """

    def insert(self, record: FileRecord) -> int:
        """Persist a new record.

        Args:
            record: Unsaved record with every field but id filled in.

        Returns:
            Generated record id.
        """
        with _translate_errors('insert'):
            record.save(force_insert=True)
        logger.info(
            'File record inserted: %s (ID: %d)',
            record.stored_name,
            record.pk,
        )
        return record.pk

    def find_all(self) -> list[FileRecord]:
        """Return every record, soft-deleted ones included.

        Returns:
            Records, newest upload first.
        """
        with _translate_errors('find_all'):
            return list(FileRecord.objects.all())

    def find_active(self) -> list[FileRecord]:
        """Return records that are not soft-deleted.

        Returns:
            Active records, newest upload first.
        """
        with _translate_errors('find_active'):
            return list(FileRecord.active_objects.all())

    def find_deleted(self, limit: int | None = None) -> list[FileRecord]:
        """Return soft-deleted records, most recently deleted first.

        Args:
            limit: Maximum number of records, None for all.

        Returns:
            Deleted records.
        """
        queryset = FileRecord.objects.filter(deleted=True).order_by(
            '-deleted_at',
            '-id',
        )
        if limit is not None:
            queryset = queryset[:limit]
        with _translate_errors('find_deleted'):
            return list(queryset)

    def iter_deleted(self) -> Iterator[FileRecord]:
        """Stream every soft-deleted record, oldest deletion first.

        Yields:
            Deleted records, fetched from the database in chunks.
        """
        queryset = FileRecord.objects.filter(deleted=True).order_by(
            'deleted_at',
            'id',
        )
        with _translate_errors('iter_deleted'):
            yield from queryset.iterator()

    def find_by_id(self, record_id: int) -> FileRecord:
        """Look up one record.

        Args:
            record_id: Record identifier.

        Returns:
            The record, deleted or not.

        Raises:
            RecordNotFoundError: If no record has this id.
        """
        with _translate_errors('find_by_id'):
            try:
                return FileRecord.objects.get(pk=record_id)
            except FileRecord.DoesNotExist as error:
                raise RecordNotFoundError(record_id) from error

    def update_flags(self, record_id: int, deleted_at: datetime) -> int:
        """Flag a record as deleted if it is not already.

        Issued as one conditional UPDATE matching on ``deleted=False``,
        so of two concurrent callers only one sees a match.

        Args:
            record_id: Record identifier.
            deleted_at: Deletion timestamp to stamp.

        Returns:
            Number of records matched (0 or 1).
        """
        with _translate_errors('update_flags'):
            matched = FileRecord.objects.filter(
                pk=record_id,
                deleted=False,
            ).update(deleted=True, deleted_at=deleted_at)
        logger.info(
            'Delete flag update for record %d matched %d row(s)',
            record_id,
            matched,
        )
        return matched
