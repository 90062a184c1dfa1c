"""Tests for the local filesystem blob store."""

import io
import logging
import threading
import time

import pytest
from django.core.files.base import ContentFile

from server.apps.files.exceptions import (
    BlobIOError,
    BlobNotFoundError,
    EmptyOrExhaustedSourceError,
    StoreTimeoutError,
)
from server.apps.files.infrastructure import storage
from server.apps.files.infrastructure.storage import (
    BlobStore,
    prepare_source,
    read_source,
)


class _OneShotStream(io.RawIOBase):
    """Non-seekable stream, like a socket body."""

    def __init__(self, payload: bytes) -> None:
        self._buffer = io.BytesIO(payload)

    def readable(self):
        return True

    def seekable(self):
        return False

    def readinto(self, buffer):
        chunk = self._buffer.read(len(buffer))
        buffer[:len(chunk)] = chunk
        return len(chunk)


class TestBlobStoreSetup:
    """Tests for directory creation."""

    def test_creates_both_directories(self, upload_dir, trash_dir):
        """Test constructing the store creates upload and trash dirs."""
        assert not upload_dir.exists()

        BlobStore(upload_dir, trash_dir)

        assert upload_dir.is_dir()
        assert trash_dir.is_dir()

    def test_existing_directories_kept(self, upload_dir, trash_dir):
        """Test existing directories and their contents survive."""
        upload_dir.mkdir()
        (upload_dir / 'keep.txt').write_bytes(b'keep')

        BlobStore(upload_dir, trash_dir)

        assert (upload_dir / 'keep.txt').read_bytes() == b'keep'


class TestPrepareSource:
    """Tests for upload source positioning."""

    def test_rewinds_probed_source(self):
        """Test a source read partially before is copied from offset 0."""
        source = io.BytesIO(b'0123456789')
        source.read(4)

        prepared = prepare_source(source)

        assert prepared.read() == b'0123456789'

    def test_rewinds_exhausted_seekable_source(self):
        """Test a seekable source at end-of-stream is still copied whole."""
        source = io.BytesIO(b'abc')
        source.read()

        assert read_source(source) == b'abc'

    def test_empty_source_rejected(self):
        """Test a zero-length source raises instead of writing nothing."""
        with pytest.raises(EmptyOrExhaustedSourceError):
            prepare_source(io.BytesIO(b''))

    def test_non_seekable_source_buffered(self):
        """Test a non-seekable source is drained into memory."""
        prepared = prepare_source(_OneShotStream(b'streamed'))

        assert prepared.read() == b'streamed'

    def test_exhausted_non_seekable_source_rejected(self):
        """Test a non-seekable source already at its end raises."""
        stream = _OneShotStream(b'gone')
        stream.read()

        with pytest.raises(EmptyOrExhaustedSourceError):
            read_source(stream)


class TestWrite:
    """Tests for BlobStore.write."""

    def test_write_persists_bytes(self, blob_store, upload_dir):
        """Test write stores exact bytes and returns their count."""
        written = blob_store.write('20260131143052_a.txt', io.BytesIO(b'hello'))

        assert written == 5
        assert (upload_dir / '20260131143052_a.txt').read_bytes() == b'hello'

    def test_write_counts_persisted_not_declared_size(self, blob_store):
        """Test the count comes from disk, not from a declared length."""
        content = ContentFile(b'twelve bytes')
        content.size = 999

        assert blob_store.write('20260131143052_b.txt', content) == 12

    def test_write_large_payload(self, blob_store, upload_dir):
        """Test payloads spanning many chunks are written whole."""
        payload = bytes(range(256)) * 4096

        written = blob_store.write('20260131143052_big.bin', io.BytesIO(payload))

        assert written == len(payload)
        assert (upload_dir / '20260131143052_big.bin').read_bytes() == payload

    def test_write_recreates_missing_upload_dir(self, blob_store, upload_dir):
        """Test the upload directory is created again if removed."""
        upload_dir.rmdir()

        blob_store.write('20260131143052_c.txt', io.BytesIO(b'x'))

        assert (upload_dir / '20260131143052_c.txt').exists()

    def test_write_refuses_existing_name(self, blob_store, upload_dir):
        """Test an existing blob is neither overwritten nor renamed."""
        blob_store.write('20260131143052_d.txt', io.BytesIO(b'first'))

        with pytest.raises(BlobIOError):
            blob_store.write('20260131143052_d.txt', io.BytesIO(b'second'))

        assert (upload_dir / '20260131143052_d.txt').read_bytes() == b'first'
        assert len(list(upload_dir.iterdir())) == 1

    def test_write_empty_source(self, blob_store, upload_dir):
        """Test an empty source creates no blob."""
        with pytest.raises(EmptyOrExhaustedSourceError):
            blob_store.write('20260131143052_e.txt', io.BytesIO(b''))

        assert not list(upload_dir.iterdir())

    def test_write_timeout(self, blob_store, monkeypatch):
        """Test a slow write surfaces as StoreTimeoutError."""
        original_save = blob_store.save

        def slow_save(name, content):
            time.sleep(0.5)
            return original_save(name, content)

        monkeypatch.setattr(blob_store, 'save', slow_save)
        blob_store.timeout = 0.05

        with pytest.raises(StoreTimeoutError):
            blob_store.write('20260131143052_slow.txt', io.BytesIO(b'x'))

    def test_write_timeout_logs_late_blob(self, blob_store, monkeypatch, caplog):
        """Test a write finishing after its timeout logs the orphaned name."""
        original_save = blob_store.save
        original_log = storage._log_late_completion
        logged = threading.Event()

        def slow_save(name, content):
            time.sleep(0.2)
            return original_save(name, content)

        def tracked_log(operation_name, future):
            original_log(operation_name, future)
            logged.set()

        monkeypatch.setattr(blob_store, 'save', slow_save)
        monkeypatch.setattr(storage, '_log_late_completion', tracked_log)
        blob_store.timeout = 0.05

        with caplog.at_level(logging.WARNING, logger=storage.__name__):
            with pytest.raises(StoreTimeoutError):
                blob_store.write('20260131143052_late.txt', io.BytesIO(b'x'))
            assert logged.wait(timeout=5)

        assert blob_store.exists('20260131143052_late.txt')
        assert '20260131143052_late.txt' in caplog.text
        assert 'completed late' in caplog.text


class TestRead:
    """Tests for BlobStore.read."""

    def test_read_returns_stream(self, blob_store):
        """Test read opens the blob from its start."""
        blob_store.write('20260131143052_a.txt', io.BytesIO(b'payload'))

        with blob_store.read('20260131143052_a.txt') as blob:
            assert blob.read() == b'payload'

    def test_read_missing_blob(self, blob_store):
        """Test read of an unknown name raises BlobNotFoundError."""
        with pytest.raises(BlobNotFoundError):
            blob_store.read('missing.txt')


class TestMoveToTrash:
    """Tests for BlobStore.move_to_trash."""

    def test_move_relocates_blob(self, blob_store, upload_dir, trash_dir):
        """Test blob leaves the upload dir and appears in trash."""
        blob_store.write('20260131143052_a.txt', io.BytesIO(b'bytes'))

        destination = blob_store.move_to_trash(
            '20260131143052_a.txt',
            '20260201090000_a.txt',
        )

        assert not (upload_dir / '20260131143052_a.txt').exists()
        assert destination == trash_dir / '20260201090000_a.txt'
        assert destination.read_bytes() == b'bytes'
        assert blob_store.in_trash('20260201090000_a.txt')

    def test_move_missing_source(self, blob_store):
        """Test moving an absent blob raises BlobNotFoundError."""
        with pytest.raises(BlobNotFoundError):
            blob_store.move_to_trash('missing.txt', 'missing.txt')

    def test_move_refuses_existing_target(self, blob_store, trash_dir):
        """Test a blob already in trash under that name is not clobbered."""
        blob_store.write('20260131143052_a.txt', io.BytesIO(b'new'))
        (trash_dir / '20260201090000_a.txt').write_bytes(b'old')

        with pytest.raises(BlobIOError):
            blob_store.move_to_trash(
                '20260131143052_a.txt',
                '20260201090000_a.txt',
            )

        assert (trash_dir / '20260201090000_a.txt').read_bytes() == b'old'
        assert blob_store.exists('20260131143052_a.txt')

    def test_move_recreates_missing_trash_dir(self, blob_store, trash_dir):
        """Test the trash directory is created again if removed."""
        trash_dir.rmdir()
        blob_store.write('20260131143052_a.txt', io.BytesIO(b'x'))

        blob_store.move_to_trash('20260131143052_a.txt', 'a.txt')

        assert (trash_dir / 'a.txt').exists()


class TestRollbackUpload:
    """Tests for BlobStore.rollback_upload."""

    def test_rollback_deletes_blob(self, blob_store):
        """Test rollback removes a written blob."""
        blob_store.write('20260131143052_a.txt', io.BytesIO(b'x'))

        blob_store.rollback_upload('20260131143052_a.txt')

        assert not blob_store.exists('20260131143052_a.txt')

    def test_rollback_failure_not_raised(self, blob_store, monkeypatch):
        """Test rollback logs instead of raising when delete fails."""
        def failing_delete(name):
            raise PermissionError(name)

        monkeypatch.setattr(blob_store, 'delete', failing_delete)

        blob_store.rollback_upload('20260131143052_a.txt')
