"""Database models for files app."""

from typing import Final, final, override

from django.db import models

# Constants for field max lengths
ORIGINAL_NAME_MAX_LENGTH: Final = 255
_STORED_NAME_MAX_LENGTH: Final = 300  # 14-digit timestamp + '_' + name
_PATH_MAX_LENGTH: Final = 1024


class ActiveRecordManager(models.Manager['FileRecord']):
    """Manager that hides soft-deleted records."""

    @override
    def get_queryset(self) -> models.QuerySet['FileRecord']:
        """Exclude records flagged as deleted.

        Returns:
            QuerySet of active records only.
        """
        return super().get_queryset().filter(deleted=False)


@final
class FileRecord(models.Model):
    """Metadata for one uploaded file.

    The bytes live on disk under ``stored_name``, which is derived from
    the upload timestamp and the client-supplied name. Records are never
    removed: soft delete flips ``deleted`` once and stamps ``deleted_at``.
    """

    original_name = models.CharField(
        max_length=ORIGINAL_NAME_MAX_LENGTH,
        help_text='Display name supplied by the client',
    )

    stored_name = models.CharField(
        max_length=_STORED_NAME_MAX_LENGTH,
        unique=True,
        help_text='Blob key: {yyyyMMddHHmmss}_{original_name}',
    )

    size_bytes = models.BigIntegerField(
        help_text='Bytes actually persisted',
    )

    path = models.CharField(
        max_length=_PATH_MAX_LENGTH,
        help_text='Blob location at upload time',
    )

    uploaded_at = models.DateTimeField(db_index=True)

    # Soft delete
    deleted = models.BooleanField(default=False, db_index=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = models.Manager()
    active_objects = ActiveRecordManager()

    class Meta:
        """Model metadata."""

        verbose_name = 'File record'  # type: ignore[mutable-override]
        verbose_name_plural = 'File records'  # type: ignore[mutable-override]
        ordering = ['-uploaded_at', '-id']

        constraints = [
            # deleted_at is stamped exactly when the record is deleted
            models.CheckConstraint(
                condition=(
                    models.Q(deleted=False, deleted_at__isnull=True) |
                    models.Q(deleted=True, deleted_at__isnull=False)
                ),
                name='files_deleted_at_matches_flag',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.stored_name

    @property
    def is_active(self) -> bool:
        """Whether the record can still be fetched."""
        return not self.deleted
