"""Metadata helpers: stored names, trash names and name validation."""

from datetime import datetime
from typing import Final

from django.core.exceptions import ValidationError
from django.utils import timezone

from server.apps.files.models import ORIGINAL_NAME_MAX_LENGTH

# Second granularity: yyyyMMddHHmmss
TIMESTAMP_FORMAT: Final = '%Y%m%d%H%M%S'

_FORBIDDEN_NAMES: Final = frozenset(('.', '..'))
_FORBIDDEN_CHARACTERS: Final = ('/', '\\', '\x00')


def format_timestamp(moment: datetime) -> str:
    """Render a moment as a 14-digit timestamp prefix.

    Aware datetimes are converted to the project's time zone first.

    Args:
        moment: Point in time to render.

    Returns:
        Timestamp string (e.g., '20260131143052').
    """
    if timezone.is_aware(moment):
        moment = timezone.localtime(moment)
    return moment.strftime(TIMESTAMP_FORMAT)


def build_stored_name(uploaded_at: datetime, original_name: str) -> str:
    """Build the blob key for an upload.

    Args:
        uploaded_at: Upload time.
        original_name: Client-supplied display name.

    Returns:
        Stored name (e.g., '20260131143052_report.pdf').
    """
    return f'{format_timestamp(uploaded_at)}_{original_name}'


def build_trash_name(deleted_at: datetime, stored_name: str) -> str:
    """Build the name a blob gets once moved to trash.

    The deletion time prefixes the unique stored name, so two records
    with the same display name deleted in the same second never share
    a trash target, and the name can be recomputed from the record.

    Args:
        deleted_at: Soft-delete time.
        stored_name: Blob key in the upload directory.

    Returns:
        Trash name (e.g., '20260201090000_20260131143052_report.pdf').
    """
    return f'{format_timestamp(deleted_at)}_{stored_name}'


def validate_original_name(original_name: str) -> None:
    """Validate a client-supplied display name.

    The name becomes part of a filesystem path, so it must be a single
    plain path component.

    Args:
        original_name: Proposed display name.

    Raises:
        ValidationError: If the name is empty, too long or not a plain
            file name.
    """
    if not original_name:
        raise ValidationError('Original name cannot be empty')

    if len(original_name) > ORIGINAL_NAME_MAX_LENGTH:
        raise ValidationError(
            f'Original name is longer than {ORIGINAL_NAME_MAX_LENGTH} '
            'characters',
        )

    if original_name in _FORBIDDEN_NAMES:
        raise ValidationError(f'Original name is reserved: {original_name}')

    for character in _FORBIDDEN_CHARACTERS:
        if character in original_name:
            raise ValidationError(
                f'Original name contains a forbidden character: '
                f'{character!r}',
            )
