"""Shared fixtures for files app tests."""

from datetime import UTC, datetime, timedelta

import pytest
from django.core.files.base import ContentFile

from server.apps.files.infrastructure.records import MetadataStore
from server.apps.files.infrastructure.storage import BlobStore
from server.apps.files.logic.file_operations import FileService

UPLOAD_TIME = datetime(2026, 1, 31, 14, 30, 52, 123456, tzinfo=UTC)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int = 1) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def upload_dir(tmp_path):
    """Directory for active blobs.

    Returns:
        Path inside the test's temporary directory.
    """
    return tmp_path / 'upload_file_dir'


@pytest.fixture
def trash_dir(tmp_path):
    """Directory for soft-deleted blobs.

    Returns:
        Path inside the test's temporary directory.
    """
    return tmp_path / 'deleted_file_dir'


@pytest.fixture
def blob_store(upload_dir, trash_dir):
    """Blob store over temporary directories.

    Returns:
        BlobStore with a generous timeout.
    """
    return BlobStore(upload_dir, trash_dir, timeout=10)


@pytest.fixture
def metadata_store(db):
    """Metadata store over the test database.

    Returns:
        MetadataStore instance.
    """
    return MetadataStore()


@pytest.fixture
def clock():
    """Manual clock starting at a fixed upload time.

    Returns:
        ManualClock instance.
    """
    return ManualClock(UPLOAD_TIME)


@pytest.fixture
def file_service(blob_store, metadata_store, clock):
    """File service wired to temporary stores and the manual clock.

    Returns:
        FileService instance.
    """
    return FileService(blob_store, metadata_store, clock=clock)


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with 12 bytes of data.
    """
    return ContentFile(b'test content', name='report.pdf')
