"""
Unit Tests: Native Boundary Marshalling

The shared library is not needed: NativeBoundary accepts any object with
the uplink-c function names, so these tests drive it with a fake library
that returns real ctypes result structs.

Tests:
    - Handle results, error results and their free calls
    - Read results carrying bytes plus the EOF sentinel
    - Custom metadata entry arrays
    - Configuration and library loading failures
"""

import ctypes

import pytest

from uplink.boundary import abi, channel
from uplink.boundary.native import (
    NativeBoundary,
    _custom_metadata,
    _decode_custom,
    _decode_object,
    _raw_error,
)
from uplink.core import constants as C
from uplink.core.config import LibraryConfig
from uplink.core.errors import BucketNotFoundError, InternalError
from uplink.core.types import (
    AccessHandle,
    DownloadHandle,
    ObjectIteratorHandle,
    ProjectHandle,
)


def error_pointer(code, message):
    return ctypes.pointer(abi.UplinkError(code=code, message=message.encode()))


class FakeLibrary:
    """Records calls and frees; functions are attached per test."""
    
    def __init__(self):
        self.freed = []
    
    def free(self, name):
        def record(value):
            self.freed.append(name)
        return record


@pytest.fixture
def fake():
    return FakeLibrary()


@pytest.fixture
def native(fake):
    return NativeBoundary(library_path="fake-uplink.so", library=fake)


class TestHandleCalls:
    """Tests for handle-producing calls."""
    
    def test_parse_access_success(self, fake, native):
        access = abi.UplinkAccess(_handle=7)
        fake.uplink_parse_access = lambda serialized: abi.UplinkAccessResult(
            access=ctypes.pointer(access), error=None,
        )
        fake.uplink_free_access_result = fake.free("access_result")
        
        result = native.parse_access("grant")
        
        assert result.error is None
        assert isinstance(result.value, AccessHandle)
        assert result.value.value == ctypes.addressof(access)
        result.release()
        assert fake.freed == ["access_result"]
    
    def test_parse_access_failure(self, fake, native):
        fake.uplink_parse_access = lambda serialized: abi.UplinkAccessResult(
            access=None, error=error_pointer(C.UPLINK_ERROR_INTERNAL, "malformed"),
        )
        fake.uplink_free_access_result = fake.free("access_result")
        
        with pytest.raises(InternalError, match="malformed"):
            channel.take(native.parse_access("garbage"))
        assert fake.freed == ["access_result"]


class TestErrorCalls:
    """Tests for calls returning a bare error pointer."""
    
    def test_success_allocates_nothing(self, fake, native):
        fake.uplink_close_project = lambda project: None
        fake.uplink_free_error = fake.free("error")
        
        channel.check(native.close_project(ProjectHandle(0x10)))
        assert fake.freed == []
    
    def test_error_is_freed(self, fake, native):
        fake.uplink_close_project = lambda project: error_pointer(
            C.UPLINK_ERROR_BUCKET_NOT_FOUND, "bucket not found",
        )
        fake.uplink_free_error = fake.free("error")
        
        with pytest.raises(BucketNotFoundError):
            channel.check(native.close_project(ProjectHandle(0x10)))
        assert fake.freed == ["error"]


class TestDownloadRead:
    """Tests for read result decoding."""
    
    def test_bytes_with_eof(self, fake, native):
        def read(download, buffer, length):
            ctypes.memmove(buffer, b"tail", 4)
            return abi.UplinkReadResult(bytes_read=4, error=error_pointer(C.EOF, "EOF"))
        
        fake.uplink_download_read = read
        fake.uplink_free_read_result = fake.free("read_result")
        
        chunk = channel.read_chunk(native.download_read(DownloadHandle(1), 32))
        assert chunk.data == b"tail"
        assert chunk.eof is True
        assert fake.freed == ["read_result"]


class TestIterators:
    """Tests for iterator dispatch."""
    
    def test_next_uses_kind_specific_symbol(self, fake, native):
        fake.uplink_object_iterator_next = lambda iterator: 1
        assert native.iterator_next(ObjectIteratorHandle(5)) is True


class TestMarshalling:
    """Tests for struct helpers."""
    
    def test_custom_metadata_round_trip(self):
        custom = {"b": "2", "a": "ünïcode", "n": None, 3: 4}
        struct, keep = _custom_metadata(custom)
        
        assert struct.count == 3
        assert keep
        assert _decode_custom(struct) == {"3": "4", "a": "ünïcode", "b": "2"}
    
    def test_empty_custom_metadata(self):
        """No entries is a zero count, not just a null array."""
        struct, keep = _custom_metadata({})
        assert struct.count == 0
        assert not struct.entries
        assert keep == []
    
    def test_decode_object(self):
        obj = abi.UplinkObject(key=b"docs/a.txt", is_prefix=False)
        obj.system.content_length = 42
        decoded = _decode_object(ctypes.pointer(obj))
        
        assert decoded.key == "docs/a.txt"
        assert decoded.content_length == 42
        assert decoded.custom == {}
        assert _decode_object(None) is None
    
    def test_raw_error(self):
        assert _raw_error(None) is None
        raw = _raw_error(error_pointer(C.UPLINK_ERROR_UPLOAD_DONE, "done"))
        assert raw.code == C.UPLINK_ERROR_UPLOAD_DONE
        assert raw.message == "done"


class TestLoading:
    """Tests for library configuration and loading."""
    
    def test_from_config_invalid(self):
        with pytest.raises(ValueError):
            NativeBoundary.from_config(LibraryConfig(library_path=""))
    
    def test_missing_library(self, tmp_path):
        with pytest.raises(OSError):
            abi.load_library(str(tmp_path / "libuplink-missing.so"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
