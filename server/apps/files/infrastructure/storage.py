"""Local filesystem blob store for uploaded files."""

import logging
import os
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from pathlib import Path
from typing import Any, BinaryIO, Final, TypeVar, final, override

from django.core.files.base import ContentFile, File
from django.core.files.storage import FileSystemStorage
from django.utils._os import safe_join

from server.apps.files.exceptions import (
    BlobIOError,
    BlobNotFoundError,
    EmptyOrExhaustedSourceError,
    StoreTimeoutError,
)

logger = logging.getLogger(__name__)

_IO_WORKERS: Final = 8

# Shared by all stores; a timed-out operation keeps running to completion
_io_executor: Final = ThreadPoolExecutor(
    max_workers=_IO_WORKERS,
    thread_name_prefix='blob-io',
)

_ResultT = TypeVar('_ResultT')


def _is_seekable(source: Any) -> bool:
    seekable = getattr(source, 'seekable', None)
    return bool(seekable is not None and seekable())


def prepare_source(content: BinaryIO | File) -> File:
    """Position an upload source at its logical start.

    A seekable source is rewound to offset 0, so a handle that was
    probed earlier (e.g. to sniff its content) is still copied whole.
    A non-seekable source is drained into memory.

    Args:
        content: File-like object to upload.

    Returns:
        Django File ready to be copied from offset 0.

    Raises:
        EmptyOrExhaustedSourceError: If the source has no bytes to copy.
    """
    source = content if isinstance(content, File) else File(content)

    if not _is_seekable(source):
        payload = source.read()
        if not payload:
            raise EmptyOrExhaustedSourceError(
                'Upload source is exhausted before copy',
            )
        return ContentFile(payload)

    source.seek(0, os.SEEK_END)
    end_offset = source.tell()
    source.seek(0)
    if not end_offset:
        raise EmptyOrExhaustedSourceError('Upload source is empty')
    return source


def read_source(content: BinaryIO | File) -> bytes:
    """Read an upload source completely from its logical start.

    Args:
        content: File-like object to upload.

    Returns:
        Every byte of the source.

    Raises:
        EmptyOrExhaustedSourceError: If the source has no bytes to copy.
    """
    source = prepare_source(content)
    payload = source.read()
    if not payload:
        raise EmptyOrExhaustedSourceError('Upload source yielded no bytes')
    return payload


@final
class BlobStore(FileSystemStorage):
    """Blob storage on the local filesystem.

    Extends Django's FileSystemStorage with:
    - A sibling trash directory for soft-deleted blobs
    - Refusal to overwrite or rename an existing blob
    - Bounded waits on every disk operation
    - Logging of every state change
    """

    def __init__(
        self,
        upload_dir: str | Path,
        trash_dir: str | Path,
        timeout: float | None = None,
    ) -> None:
        """Initialize the store and create both directories.

        Args:
            upload_dir: Directory holding active blobs.
            trash_dir: Directory holding soft-deleted blobs.
            timeout: Seconds each disk operation may take, None to wait
                indefinitely.
        """
        super().__init__(location=str(upload_dir))
        self.trash_location = os.path.abspath(trash_dir)
        self.timeout = timeout
        self.ensure_directories()

    def ensure_directories(self) -> None:
        """Create the upload and trash directories if absent."""
        for directory in (self.location, self.trash_location):
            Path(directory).mkdir(parents=True, exist_ok=True)

    @override
    def get_available_name(
        self,
        name: str,
        max_length: int | None = None,
    ) -> str:
        """Refuse names that are already taken.

        Stored names are derived deterministically, so a suffixed
        alternative would break the record-to-blob mapping.

        Args:
            name: Requested stored name.
            max_length: Unused, kept for the Storage signature.

        Returns:
            The requested name unchanged.

        Raises:
            BlobIOError: If a blob with that name already exists.
        """
        if self.exists(name):
            logger.warning('Refusing to overwrite existing blob: %s', name)
            raise BlobIOError(f'Blob already exists: {name}')
        return name

    def write(self, stored_name: str, content: BinaryIO | File) -> int:
        """Write every byte of content to upload_dir/stored_name.

        Args:
            stored_name: Blob key.
            content: File-like object, copied from its logical start.

        Returns:
            Number of bytes persisted on disk.

        Raises:
            EmptyOrExhaustedSourceError: If the source has no bytes.
            BlobIOError: If the name is taken or the disk write fails.
            StoreTimeoutError: If the write exceeds the timeout.
        """
        source = prepare_source(content)
        try:
            logger.info('Writing blob: %s', stored_name)
            saved_name = self._run_bounded(self.save, stored_name, source)
            written = self.size(saved_name)
        except OSError as error:
            logger.exception('Failed to write blob: %s', stored_name)
            raise BlobIOError(f'Unable to write blob: {stored_name}') from error

        logger.info('Blob written: %s (%d bytes)', saved_name, written)
        return written

    def read(self, stored_name: str) -> File:
        """Open a blob for sequential binary reading.

        The caller owns the returned file and must close it.

        Args:
            stored_name: Blob key.

        Returns:
            Open Django File positioned at offset 0.

        Raises:
            BlobNotFoundError: If the blob does not exist.
            BlobIOError: If the blob cannot be opened.
            StoreTimeoutError: If opening exceeds the timeout.
        """
        try:
            return self._run_bounded(self.open, stored_name, 'rb')
        except FileNotFoundError as error:
            raise BlobNotFoundError(stored_name) from error
        except OSError as error:
            logger.exception('Failed to open blob: %s', stored_name)
            raise BlobIOError(f'Unable to read blob: {stored_name}') from error

    def move_to_trash(self, stored_name: str, trash_name: str) -> Path:
        """Rename a blob from the upload directory into trash.

        Args:
            stored_name: Blob key in the upload directory.
            trash_name: Target name in the trash directory.

        Returns:
            Absolute path of the blob in trash.

        Raises:
            BlobNotFoundError: If the source blob does not exist.
            BlobIOError: If the target exists or the rename fails.
            StoreTimeoutError: If the rename exceeds the timeout.
        """
        source = Path(self.path(stored_name))
        destination = self.trash_path(trash_name)

        if not source.exists():
            logger.warning('Blob to trash not found: %s', stored_name)
            raise BlobNotFoundError(stored_name)
        if self.in_trash(trash_name):
            logger.warning('Trash target already exists: %s', trash_name)
            raise BlobIOError(f'Trash target already exists: {trash_name}')

        try:
            logger.info('Moving blob to trash: %s -> %s', stored_name, trash_name)
            self._run_bounded(_rename, source, destination)
        except FileNotFoundError as error:
            raise BlobNotFoundError(stored_name) from error
        except OSError as error:
            logger.exception(
                'Move to trash failed: %s -> %s',
                stored_name,
                trash_name,
            )
            raise BlobIOError(
                f'Unable to move blob {stored_name} to trash',
            ) from error

        logger.info('Moved blob to trash: %s -> %s', stored_name, trash_name)
        return destination

    def trash_path(self, trash_name: str) -> Path:
        """Absolute path of a name inside the trash directory."""
        return Path(safe_join(self.trash_location, trash_name))

    def in_trash(self, trash_name: str) -> bool:
        """Check whether a blob with this name is in trash."""
        return self.trash_path(trash_name).exists()

    def rollback_upload(self, stored_name: str) -> None:
        """Delete a written blob whose metadata record was never created.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised. The blob then remains as an orphan
        with no metadata, which is a leak rather than an inconsistency.

        Args:
            stored_name: Blob key to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting blob: %s', stored_name)
            self.delete(stored_name)
            logger.info('Successfully rolled back upload: %s', stored_name)
        except OSError:
            logger.exception(
                'Failed to rollback upload, orphaned blob: %s',
                stored_name,
            )

    def _run_bounded(
        self,
        operation: Callable[..., _ResultT],
        *args: Any,
    ) -> _ResultT:
        if self.timeout is None:
            return operation(*args)

        future = _io_executor.submit(operation, *args)
        try:
            return future.result(timeout=self.timeout)
        except TimeoutError as error:
            operation_name = getattr(operation, '__name__', operation)
            logger.exception(
                'Blob operation exceeded %.1fs: %s',
                self.timeout,
                operation_name,
            )
            future.add_done_callback(
                partial(_log_late_completion, operation_name),
            )
            raise StoreTimeoutError(
                f'Blob operation timed out after {self.timeout}s',
            ) from error


def _log_late_completion(operation_name: Any, future: Future[Any]) -> None:
    # The caller already got StoreTimeoutError; a late success is a leak
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.warning(
            'Timed-out blob operation %s failed later: %s',
            operation_name,
            error,
        )
        return
    logger.warning(
        'Timed-out blob operation %s completed late, result: %s',
        operation_name,
        future.result(),
    )


def _rename(source: Path, destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    source.rename(destination)
