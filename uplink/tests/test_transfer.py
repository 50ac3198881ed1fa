"""
Integration Tests: Streaming Uploads and Downloads

Tests:
    - Partial writes summing to the content length
    - Read accumulation and end-of-stream detection
    - Round trip and byte ranges
    - Commit/abort state machine and the write-abort safeguard
    - Scope-exit cleanup of abandoned uploads
"""

import hashlib
import logging
import os

import pytest

from uplink.core import constants as C
from uplink.core.errors import (
    BucketNotFoundError,
    HandleReleasedError,
    InternalError,
    InvalidArgumentError,
    ObjectKeyNotFoundError,
    StorageLimitExceededError,
    UploadDoneError,
)
from uplink.models import DownloadOptions, UploadOptions
from uplink.tests.helpers import put_object, read_object
from uplink.transfer import TransferState


@pytest.fixture
def payload():
    return os.urandom(100_000)


class TestUpload:
    """Tests for single-object uploads."""
    
    def test_partial_writes_sum_to_length(self, boundary, project, bucket, payload):
        """Each write may accept less; the running total reaches len(payload)."""
        boundary.write_limit = 4096
        
        with project.upload_object(bucket, "blob") as upload:
            total = 0
            calls = 0
            while total < len(payload):
                written = upload.write(payload[total:])
                assert 0 < written <= 4096
                total += written
                calls += 1
            upload.commit()
        
        assert total == len(payload)
        assert calls == -(-len(payload) // 4096)
        assert project.stat_object(bucket, "blob").content_length == total
    
    def test_write_all_with_chunks(self, boundary, project, bucket, payload):
        boundary.write_limit = 1000
        with project.upload_object(bucket, "blob") as upload:
            assert upload.write_all(payload, chunk_size=8 * C.KB) == len(payload)
            upload.commit()
        assert read_object(project, bucket, "blob") == payload
    
    def test_write_length_truncates(self, project, bucket):
        with project.upload_object(bucket, "blob") as upload:
            assert upload.write(b"hello world", 5) == 5
            upload.commit()
        assert read_object(project, bucket, "blob") == b"hello"
    
    @pytest.mark.parametrize("data,expected", [
        ("héllo", "héllo".encode("utf-8")),
        ([104, 105], b"hi"),
        (bytearray(b"ba"), b"ba"),
        (memoryview(b"mv"), b"mv"),
    ])
    def test_write_sources(self, project, bucket, data, expected):
        with project.upload_object(bucket, "blob") as upload:
            upload.write_all(data)
            upload.commit()
        assert read_object(project, bucket, "blob") == expected
    
    @pytest.mark.parametrize("data", [None, 12, {"a": 1}, [300]])
    def test_invalid_write_source(self, boundary, project, bucket, data):
        """Bad buffers fail locally and leave the upload open."""
        with project.upload_object(bucket, "blob") as upload:
            with pytest.raises(InvalidArgumentError):
                upload.write(data)
            assert upload.is_open
            upload.abort()
        assert boundary.call_count("upload_write") == 0
    
    def test_info_after_commit(self, project, bucket):
        with project.upload_object(bucket, "blob") as upload:
            upload.write_all(b"12345")
            upload.set_custom_metadata({"a": "1"})
            upload.set_custom_metadata({"b": "2"})
            upload.commit()
            info = upload.info()
        assert info.key == "blob"
        assert info.content_length == 5
        assert info.custom == {"b": "2"}
    
    def test_expiration(self, project, bucket):
        with project.upload_object(bucket, "blob", UploadOptions(expires=4_000_000_000)) as upload:
            upload.commit()
        assert project.stat_object(bucket, "blob").expires == 4_000_000_000
    
    def test_abort_leaves_key_absent(self, project, bucket):
        with project.upload_object(bucket, "blob") as upload:
            upload.write_all(b"discard me")
            upload.abort()
            assert upload.state is TransferState.ABORTED
        with pytest.raises(ObjectKeyNotFoundError):
            project.stat_object(bucket, "blob")
    
    def test_abort_keeps_existing_object(self, project, bucket):
        put_object(project, bucket, "blob", b"original")
        with project.upload_object(bucket, "blob") as upload:
            upload.write_all(b"replacement")
            upload.abort()
        assert read_object(project, bucket, "blob") == b"original"
    
    def test_double_commit(self, project, bucket):
        """A second commit is reported by the boundary, not ignored."""
        with project.upload_object(bucket, "blob") as upload:
            upload.write_all(b"x")
            upload.commit()
            with pytest.raises(UploadDoneError):
                upload.commit()
    
    def test_write_after_abort(self, project, bucket):
        with project.upload_object(bucket, "blob") as upload:
            upload.abort()
            with pytest.raises(UploadDoneError):
                upload.write(b"late")
    
    def test_failed_write_aborts(self, boundary, project, bucket):
        """A boundary error during write aborts the upload before it propagates."""
        with project.upload_object(bucket, "blob") as upload:
            upload.write(b"first")
            boundary.inject_fault(
                "upload_write", C.UPLINK_ERROR_STORAGE_LIMIT_EXCEEDED, "storage limit",
            )
            with pytest.raises(StorageLimitExceededError, match="storage limit"):
                upload.write(b"second")
            assert upload.state is TransferState.ABORTED
            with pytest.raises(UploadDoneError):
                upload.commit()
        
        assert boundary.call_count("upload_abort") == 1
        with pytest.raises(ObjectKeyNotFoundError):
            project.stat_object(bucket, "blob")
    
    def test_abandoned_upload_aborted_with_warning(self, boundary, project, bucket, caplog):
        with caplog.at_level(logging.WARNING, logger="uplink.transfer"):
            with project.upload_object(bucket, "blob") as upload:
                upload.write_all(b"never committed")
        
        assert "Neither committed nor aborted" in caplog.text
        assert boundary.call_count("upload_abort") == 1
        with pytest.raises(ObjectKeyNotFoundError):
            project.stat_object(bucket, "blob")
    
    def test_caller_error_aborts_upload(self, boundary, project, bucket):
        with pytest.raises(ZeroDivisionError):
            with project.upload_object(bucket, "blob") as upload:
                upload.write_all(b"partial")
                1 / 0
        assert boundary.call_count("upload_abort") == 1
        with pytest.raises(ObjectKeyNotFoundError):
            project.stat_object(bucket, "blob")
    
    def test_upload_handle_after_scope(self, project, bucket):
        with project.upload_object(bucket, "blob") as upload:
            upload.commit()
        with pytest.raises(HandleReleasedError):
            upload.write(b"x")
    
    def test_upload_to_missing_bucket(self, project):
        with pytest.raises(BucketNotFoundError):
            with project.upload_object("missing", "blob"):
                pass


class TestDownload:
    """Tests for downloads."""
    
    def test_round_trip_checksum(self, project, bucket, payload):
        put_object(project, bucket, "blob", payload)
        downloaded = read_object(project, bucket, "blob")
        assert hashlib.sha256(downloaded).digest() == hashlib.sha256(payload).digest()
    
    def test_reads_accumulate_in_order(self, boundary, project, bucket, payload):
        """Appends never overwrite; EOF arrives only after the last byte."""
        put_object(project, bucket, "blob", payload)
        boundary.read_limit = 3000
        
        with project.download_object(bucket, "blob") as download:
            buffer = bytearray(b"prefix:")
            total = 0
            eof = False
            while not eof:
                count, eof = download.read(buffer, 8 * C.KB)
                total += count
        
        assert total == len(payload)
        assert bytes(buffer) == b"prefix:" + payload
    
    def test_eof_with_final_bytes(self, boundary, project, bucket):
        """Bytes delivered together with EOF are still appended."""
        put_object(project, bucket, "blob", b"0123456789")
        boundary.eof_with_data = True
        
        with project.download_object(bucket, "blob") as download:
            buffer = bytearray()
            assert download.read(buffer, 4) == (4, False)
            assert download.read(buffer, 100) == (6, True)
        assert bytes(buffer) == b"0123456789"
    
    def test_zero_length_read_is_not_eof(self, project, bucket):
        put_object(project, bucket, "blob", b"data")
        with project.download_object(bucket, "blob") as download:
            buffer = bytearray()
            assert download.read(buffer, 0) == (0, False)
            assert download.read_all() == b"data"
    
    def test_empty_object(self, project, bucket):
        put_object(project, bucket, "empty", b"")
        with project.download_object(bucket, "empty") as download:
            buffer = bytearray()
            assert download.read(buffer, 10) == (0, True)
    
    @pytest.mark.parametrize("offset,length", [(0, 10), (5, 20), (99_990, 10), (50_000, -1)])
    def test_range(self, project, bucket, payload, offset, length):
        put_object(project, bucket, "blob", payload)
        options = DownloadOptions(offset=offset, length=length)
        expected = payload[offset:] if length < 0 else payload[offset:offset + length]
        assert read_object(project, bucket, "blob", options) == expected
    
    def test_offset_beyond_length(self, project, bucket):
        """Out-of-range offsets are rejected by the boundary, not locally."""
        put_object(project, bucket, "blob", b"short")
        with pytest.raises(InternalError):
            read_object(project, bucket, "blob", DownloadOptions(offset=100))
    
    def test_info(self, project, bucket):
        put_object(project, bucket, "blob", b"12345", custom={"k": "v"})
        with project.download_object(bucket, "blob") as download:
            info = download.info()
        assert info.content_length == 5
        assert info.custom == {"k": "v"}
    
    def test_invalid_buffers(self, project, bucket):
        put_object(project, bucket, "blob", b"data")
        with project.download_object(bucket, "blob") as download:
            with pytest.raises(InvalidArgumentError):
                download.read(None, 10)
            with pytest.raises(InvalidArgumentError):
                download.read(b"immutable", 10)
            with pytest.raises(InvalidArgumentError):
                download.read(bytearray(), -1)
    
    def test_closed_once_on_error(self, boundary, project, bucket):
        """close runs exactly once even when the read loop fails."""
        put_object(project, bucket, "blob", b"data")
        boundary.inject_fault("download_read", C.UPLINK_ERROR_INTERNAL, "connection reset")
        
        with pytest.raises(InternalError, match="connection reset"):
            with project.download_object(bucket, "blob") as download:
                download.read_all()
        assert boundary.call_count("close_download") == 1
    
    def test_manual_close(self, boundary, project, bucket):
        put_object(project, bucket, "blob", b"data")
        with project.download_object(bucket, "blob", auto_close=False) as download:
            download.read_all()
            download.close()
            with pytest.raises(InternalError, match="already closed"):
                download.close()
        assert boundary.call_count("close_download") == 2
    
    def test_download_missing(self, project, bucket):
        with pytest.raises(ObjectKeyNotFoundError):
            with project.download_object(bucket, "missing"):
                pass


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
