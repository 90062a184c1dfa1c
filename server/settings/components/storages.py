"""Local filesystem storage configuration for uploaded files.

Active blobs live in the upload directory. Soft-deleted blobs are moved
to the sibling trash directory. Both are created on first use.
"""

from server.settings.components import BASE_DIR, config

FILES_UPLOAD_DIR = config(
    'FILES_UPLOAD_DIR',
    default=str(BASE_DIR.joinpath('file_path', 'upload_file_dir')),
)

FILES_TRASH_DIR = config(
    'FILES_TRASH_DIR',
    default=str(BASE_DIR.joinpath('file_path', 'deleted_file_dir')),
)

# Seconds a single blob write, read or move may take
FILES_IO_TIMEOUT = config('FILES_IO_TIMEOUT', cast=float, default=30)
