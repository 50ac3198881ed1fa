"""
Unit Tests: Result/Error Channel and Resource Registry

Tests:
    - Decoding success, failure and the EOF sentinel
    - Exactly-once release of every result
    - Lease lifetime, double release and use after release
    - scoped() cleanup on normal and exceptional exit
"""

import logging

import pytest

from uplink.boundary import channel
from uplink.boundary.protocol import BoundaryResult, RawError
from uplink.core import constants as C
from uplink.core.errors import (
    BucketNotFoundError,
    HandleReleasedError,
    InternalError,
    UplinkError,
)
from uplink.core.types import Err, Ok, ProjectHandle
from uplink.registry import ResourceRegistry, scoped


class Tracked:
    """BoundaryResult factory that counts releases."""
    
    def __init__(self):
        self.releases = 0
    
    def release(self):
        self.releases += 1
    
    def result(self, value=None, code=None, message=""):
        error = RawError(code, message) if code is not None else None
        return BoundaryResult(value=value, error=error, release=self.release)


@pytest.fixture
def tracked():
    return Tracked()


class TestDecode:
    """Tests for channel.decode / take / check."""
    
    def test_success(self, tracked):
        assert channel.decode(tracked.result(value=7)) == Ok(7)
        assert tracked.releases == 0
    
    def test_failure(self, tracked):
        decoded = channel.decode(tracked.result(code=C.UPLINK_ERROR_BUCKET_NOT_FOUND, message="gone"))
        assert isinstance(decoded, Err)
        assert isinstance(decoded.error, BucketNotFoundError)
        assert decoded.error.message == "gone"
    
    def test_eof_is_not_failure(self, tracked):
        """The EOF sentinel decodes to success."""
        assert channel.decode(tracked.result(value=b"", code=C.EOF, message="EOF")).is_ok()
    
    def test_take_releases_once(self, tracked):
        assert channel.take(tracked.result(value="s")) == "s"
        assert tracked.releases == 1
    
    def test_take_failure_releases_once(self, tracked):
        with pytest.raises(InternalError):
            channel.take(tracked.result(code=C.UPLINK_ERROR_INTERNAL, message="x"))
        assert tracked.releases == 1
    
    def test_check_unmapped_code(self, tracked):
        """An unmapped code surfaces as InternalError with the code preserved."""
        with pytest.raises(InternalError) as info:
            channel.check(tracked.result(code=0x99, message="future"))
        assert info.value.code == 0x99
        assert tracked.releases == 1
    
    def test_consume_releases_on_caller_error(self, tracked):
        with pytest.raises(KeyError):
            with channel.consume(tracked.result(value={})) as value:
                value["missing"]
        assert tracked.releases == 1
    
    def test_raise_for(self):
        channel.raise_for(None)
        channel.raise_for(RawError(C.EOF, "EOF"))
        with pytest.raises(UplinkError):
            channel.raise_for(RawError(C.UPLINK_ERROR_CANCELED, "canceled"))


class TestReadChunk:
    """Tests for read outcome decoding."""
    
    def test_bytes_without_eof(self, tracked):
        chunk = channel.read_chunk(tracked.result(value=b"abc"))
        assert chunk.data == b"abc"
        assert len(chunk) == 3
        assert chunk.eof is False
        assert tracked.releases == 1
    
    def test_bytes_with_eof(self, tracked):
        """Final bytes may arrive together with the sentinel."""
        chunk = channel.read_chunk(tracked.result(value=b"end", code=C.EOF))
        assert chunk.data == b"end"
        assert chunk.eof is True
    
    def test_zero_bytes_is_not_eof(self, tracked):
        chunk = channel.read_chunk(tracked.result(value=b""))
        assert len(chunk) == 0
        assert chunk.eof is False
    
    def test_read_failure(self, tracked):
        with pytest.raises(InternalError):
            channel.read_chunk(tracked.result(code=C.UPLINK_ERROR_INTERNAL, message="closed"))
        assert tracked.releases == 1


class TestRegistry:
    """Tests for ResourceRegistry and Lease."""
    
    def test_claim_and_release(self, tracked):
        registry = ResourceRegistry()
        lease = registry.claim(tracked.result(value=ProjectHandle(0x10)), "project")
        
        assert lease.is_live
        assert lease.handle == ProjectHandle(0x10)
        assert registry.outstanding() == ["project"]
        
        lease.release()
        assert tracked.releases == 1
        assert not lease.is_live
        assert len(registry) == 0
    
    def test_double_release(self, tracked):
        """A second release raises instead of double-freeing."""
        registry = ResourceRegistry()
        lease = registry.claim(tracked.result(value=ProjectHandle(1)), "project")
        lease.release()
        
        with pytest.raises(HandleReleasedError):
            lease.release()
        assert tracked.releases == 1
    
    def test_handle_after_release(self, tracked):
        registry = ResourceRegistry()
        lease = registry.claim(tracked.result(value=ProjectHandle(1)), "project")
        lease.release()
        
        with pytest.raises(HandleReleasedError):
            lease.handle
    
    def test_failed_claim_releases_and_raises(self, tracked):
        registry = ResourceRegistry()
        with pytest.raises(BucketNotFoundError):
            registry.claim(tracked.result(code=C.UPLINK_ERROR_BUCKET_NOT_FOUND, message="x"), "iterator")
        assert tracked.releases == 1
        assert registry.outstanding() == []
    
    def test_claim_without_handle(self, tracked):
        registry = ResourceRegistry()
        with pytest.raises(ValueError):
            registry.claim(tracked.result(), "project")
        assert tracked.releases == 1
    
    def test_tokens_never_reused(self, tracked):
        registry = ResourceRegistry()
        first = registry.claim(tracked.result(value=ProjectHandle(1)), "project")
        first.release()
        second = registry.claim(tracked.result(value=ProjectHandle(1)), "project")
        
        assert second.token != first.token
        assert not first.is_live
        second.release()


class TestScoped:
    """Tests for scoped() ownership."""
    
    def test_normal_exit_runs_finalize(self, tracked):
        registry = ResourceRegistry()
        lease = registry.claim(tracked.result(value=ProjectHandle(1)), "project")
        calls = []
        
        with scoped(lease, "resource", finalize=lambda: calls.append("finalize")) as resource:
            assert resource == "resource"
        
        assert calls == ["finalize"]
        assert tracked.releases == 1
    
    def test_error_exit_prefers_on_error(self, tracked):
        registry = ResourceRegistry()
        lease = registry.claim(tracked.result(value=ProjectHandle(1)), "upload")
        calls = []
        
        with pytest.raises(KeyError):
            with scoped(
                lease, None,
                finalize=lambda: calls.append("finalize"),
                on_error=lambda: calls.append("on_error"),
            ):
                raise KeyError("caller bug")
        
        assert calls == ["on_error"]
        assert not lease.is_live
    
    def test_cleanup_failure_does_not_mask_error(self, tracked, caplog):
        """The block's exception wins over a failing cleanup, which is logged."""
        registry = ResourceRegistry()
        lease = registry.claim(tracked.result(value=ProjectHandle(1)), "project")
        
        def failing_close():
            raise InternalError(code=C.UPLINK_ERROR_INTERNAL, message="close failed")
        
        with caplog.at_level(logging.WARNING, logger="uplink.registry"):
            with pytest.raises(KeyError):
                with scoped(lease, None, finalize=failing_close):
                    raise KeyError("first")
        
        assert "close failed" in caplog.text
        assert tracked.releases == 1
    
    def test_finalize_failure_propagates(self, tracked):
        registry = ResourceRegistry()
        lease = registry.claim(tracked.result(value=ProjectHandle(1)), "project")
        
        def failing_close():
            raise InternalError(code=C.UPLINK_ERROR_INTERNAL, message="close failed")
        
        with pytest.raises(InternalError):
            with scoped(lease, None, finalize=failing_close):
                pass
        assert not lease.is_live


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
