"""Exceptions for files app."""


class FileStoreError(Exception):
    """Base class for every failure surfaced by the files app."""


class NotFoundError(FileStoreError):
    """Raised when a referenced record or blob does not exist."""


class RecordNotFoundError(NotFoundError):
    """Raised when no fetchable metadata record matches an id."""

    def __init__(self, record_id: int) -> None:
        """Initialize RecordNotFoundError.

        Args:
            record_id: Identifier that did not resolve.
        """
        self.record_id = record_id
        super().__init__(f'File record not found: {record_id}')


class BlobNotFoundError(NotFoundError):
    """Raised when a blob is missing from the filesystem."""

    def __init__(self, name: str) -> None:
        """Initialize BlobNotFoundError.

        Args:
            name: Stored name of the missing blob.
        """
        self.name = name
        super().__init__(f'Blob not found: {name}')


class AlreadyDeletedError(FileStoreError):
    """Raised when soft-deleting a record that is already deleted."""

    def __init__(self, record_id: int) -> None:
        """Initialize AlreadyDeletedError.

        Args:
            record_id: Identifier of the deleted record.
        """
        self.record_id = record_id
        super().__init__(f'File record already deleted: {record_id}')


class BlobIOError(FileStoreError):
    """Raised when writing or moving a blob fails on disk."""


class EmptyOrExhaustedSourceError(FileStoreError):
    """Raised when an upload source yields no bytes at copy time."""


class StoreTimeoutError(FileStoreError):
    """Raised when the blob or metadata store exceeds its deadline."""


class MetadataStoreError(FileStoreError):
    """Raised when the metadata store fails for a reason other than timeout."""


class PartialDeleteError(FileStoreError):
    """Raised when the deleted flag was set but the blob move failed.

    The metadata store and the filesystem now disagree. The record stays
    flagged as deleted and must be repaired by reconciliation.
    """

    def __init__(
        self,
        record_id: int,
        stored_name: str,
        trash_name: str,
    ) -> None:
        """Initialize PartialDeleteError.

        Args:
            record_id: Identifier of the flagged record.
            stored_name: Blob that is still in the upload directory.
            trash_name: Name the blob should have had in trash.
        """
        self.record_id = record_id
        self.stored_name = stored_name
        self.trash_name = trash_name
        super().__init__(
            f'Record {record_id} marked deleted but blob {stored_name} '
            f'was not moved to trash as {trash_name}',
        )
