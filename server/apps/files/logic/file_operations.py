"""Business logic for file operations."""

import logging
from collections.abc import Callable
from datetime import datetime
from typing import BinaryIO, final

from django.conf import settings
from django.core.files.base import ContentFile, File
from django.utils import timezone

from server.apps.files.exceptions import (
    AlreadyDeletedError,
    FileStoreError,
    PartialDeleteError,
    RecordNotFoundError,
)
from server.apps.files.infrastructure.metadata import (
    build_stored_name,
    build_trash_name,
    validate_original_name,
)
from server.apps.files.infrastructure.records import MetadataStore
from server.apps.files.infrastructure.storage import BlobStore, read_source
from server.apps.files.models import FileRecord

logger = logging.getLogger(__name__)


@final
class FileService:
    """Coordinates the blob store and the metadata store.

    Ordering rules:
    - Upload writes the blob before inserting the record, so a record
      never points at a missing blob.
    - Soft delete flags the record before moving the blob, so a crash
      in between leaves a detectable, repairable state.
    """

    def __init__(
        self,
        blob_store: BlobStore,
        metadata_store: MetadataStore,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        """Initialize the service.

        Args:
            blob_store: Store for file bytes.
            metadata_store: Store for file records.
            clock: Source of the current time.
        """
        self.blob_store = blob_store
        self.metadata_store = metadata_store
        self._clock = clock

    def upload(
        self,
        original_name: str,
        content: BinaryIO | File,
    ) -> FileRecord:
        """Store file bytes and create their metadata record.

        Args:
            original_name: Client-supplied display name.
            content: File-like object, read from its logical start.

        Returns:
            Inserted FileRecord with its generated id.

        Raises:
            ValidationError: If the name is not a plain file name.
            EmptyOrExhaustedSourceError: If the source has no bytes.
            BlobIOError: If the blob cannot be written.
            StoreTimeoutError: If a store exceeds its deadline.
            MetadataStoreError: If the record cannot be inserted.
        """
        validate_original_name(original_name)

        payload = read_source(content)
        uploaded_at = self._clock().replace(microsecond=0)
        stored_name = build_stored_name(uploaded_at, original_name)

        # Step 1: bytes on disk first
        size_bytes = self.blob_store.write(
            stored_name,
            ContentFile(payload, name=stored_name),
        )

        # Step 2: metadata record
        record = FileRecord(
            original_name=original_name,
            stored_name=stored_name,
            size_bytes=size_bytes,
            path=self.blob_store.path(stored_name),
            uploaded_at=uploaded_at,
        )
        try:
            self.metadata_store.insert(record)
        except FileStoreError:
            logger.exception(
                'Metadata insert failed, rolling back blob: %s',
                stored_name,
            )
            self.blob_store.rollback_upload(stored_name)
            raise

        logger.info(
            'File uploaded: %s as %s (ID: %d, size: %d)',
            original_name,
            stored_name,
            record.pk,
            size_bytes,
        )
        return record

    def list_files(self) -> list[FileRecord]:
        """List every record, soft-deleted ones included.

        Returns:
            Records in store order (newest upload first).
        """
        return self.metadata_store.find_all()

    def list_active_files(self) -> list[FileRecord]:
        """List records that can still be fetched.

        Returns:
            Active records in store order.
        """
        return self.metadata_store.find_active()

    def fetch(self, record_id: int) -> File:
        """Open the bytes of an active file.

        Args:
            record_id: Record identifier.

        Returns:
            Open Django File; the caller must close it.

        Raises:
            RecordNotFoundError: If the id is unknown or soft-deleted.
            BlobNotFoundError: If the record's blob is missing.
        """
        record = self.metadata_store.find_by_id(record_id)
        if not record.is_active:
            logger.info('Fetch refused for deleted record: %d', record_id)
            raise RecordNotFoundError(record_id)
        return self.blob_store.read(record.stored_name)

    def soft_delete(self, record_id: int) -> FileRecord:
        """Flag a record deleted and move its blob to trash.

        Args:
            record_id: Record identifier.

        Returns:
            The record with ``deleted`` and ``deleted_at`` set.

        Raises:
            RecordNotFoundError: If the id is unknown.
            AlreadyDeletedError: If the record was already deleted,
                including by a concurrent caller.
            PartialDeleteError: If the record was flagged but the blob
                could not be moved. No rollback is attempted.
        """
        record = self.metadata_store.find_by_id(record_id)
        if not record.is_active:
            logger.warning('Record already deleted: %d', record_id)
            raise AlreadyDeletedError(record_id)

        # Step 1: flag the record
        deleted_at = self._clock()
        if not self.metadata_store.update_flags(record_id, deleted_at):
            logger.warning('Record deleted concurrently: %d', record_id)
            raise AlreadyDeletedError(record_id)
        record.deleted = True
        record.deleted_at = deleted_at

        # Step 2: move the blob
        trash_name = build_trash_name(deleted_at, record.stored_name)
        try:
            self.blob_store.move_to_trash(record.stored_name, trash_name)
        except FileStoreError as error:
            logger.exception(
                'Record %d flagged deleted but blob was not moved: %s',
                record_id,
                record.stored_name,
            )
            raise PartialDeleteError(
                record_id,
                record.stored_name,
                trash_name,
            ) from error

        logger.info(
            'File moved to trash: %s -> %s (ID: %d)',
            record.stored_name,
            trash_name,
            record_id,
        )
        return record


def get_file_service() -> FileService:
    """Build a FileService from project settings.

    Creates the upload and trash directories if they are absent.

    Returns:
        FileService over the configured directories.
    """
    blob_store = BlobStore(
        upload_dir=settings.FILES_UPLOAD_DIR,
        trash_dir=settings.FILES_TRASH_DIR,
        timeout=getattr(settings, 'FILES_IO_TIMEOUT', None),
    )
    return FileService(blob_store, MetadataStore())
