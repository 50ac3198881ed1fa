"""
Streaming Transfer Engine: Uploads, Part Uploads and Downloads

State machines:
    Upload / PartUpload:  open -> {write}* -> commit | abort -> closed
    Download:             open -> {read}* -> close

Rules:
    - write() may accept fewer bytes than offered; write_all() loops
    - Any boundary error during write() aborts the upload before the error
      propagates, so a partially failed upload is never committable
    - commit()/abort() are always forwarded; repeating them is reported by
      the boundary (UploadDoneError), not guarded here
    - read() appends to the caller's buffer and reports end-of-stream only
      from the EOF sentinel, never from a zero-length read
    - An upload still open when its `with` block exits is aborted
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, MutableSequence, Optional, Union

from uplink.boundary import channel
from uplink.boundary.protocol import Boundary, BoundaryResult
from uplink.core import constants as C
from uplink.core.errors import InvalidArgumentError, UplinkError
from uplink.core.types import DownloadHandle, PartUploadHandle, UploadHandle
from uplink.models import Object, UploadPart, normalize_custom_metadata
from uplink.observability.logging import StructuredLogger
from uplink.registry import Lease

logger = StructuredLogger(__name__)

WriteSource = Union[bytes, bytearray, memoryview, str, list, tuple]


# =============================================================================
# TRANSFER STATE
# =============================================================================
class TransferState(Enum):
    """Local view of a write stream, used only to decide scope-exit cleanup."""
    OPEN = "open"
    COMMITTED = "committed"
    ABORTED = "aborted"


def _as_bytes(data: Any, length: Optional[int] = None) -> bytes:
    """
    Normalize a write source to bytes, truncated to `length` when given.

    Raises:
        InvalidArgumentError: On None, an unsupported type or a negative length
    """
    if data is None:
        raise InvalidArgumentError("data", "must not be None")
    if isinstance(data, (bytes, bytearray, memoryview)):
        raw = bytes(data)
    elif isinstance(data, str):
        raw = data.encode("utf-8")
    elif isinstance(data, (list, tuple)):
        try:
            raw = bytes(data)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError("data", f"not a sequence of byte values: {e}") from e
    else:
        raise InvalidArgumentError("data", f"unsupported type {type(data).__name__}")

    if length is None:
        return raw
    if length < 0:
        raise InvalidArgumentError("length", "must be >= 0")
    return raw[:length]


# =============================================================================
# WRITE STREAMS
# =============================================================================
class _WriteStream:
    """Shared write/commit/abort logic of Upload and PartUpload."""

    __slots__ = ("_boundary", "_lease", "_state", "_log")

    kind = "upload"

    def __init__(self, boundary: Boundary, lease: Lease, **fields: Any) -> None:
        self._boundary = boundary
        self._lease = lease
        self._state = TransferState.OPEN
        self._log = logger.with_extra(resource=self.kind, **fields)

    # Boundary calls differ between the two stream kinds.
    def _write_call(self, data: bytes) -> BoundaryResult[int]:
        raise NotImplementedError

    def _commit_call(self) -> BoundaryResult[None]:
        raise NotImplementedError

    def _abort_call(self) -> BoundaryResult[None]:
        raise NotImplementedError

    @property
    def state(self) -> TransferState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is TransferState.OPEN

    def write(self, data: WriteSource, length: Optional[int] = None) -> int:
        """
        Send up to `length` bytes of `data` (all of it when length is None).

        Returns:
            Number of bytes the boundary accepted; may be less than offered

        Raises:
            InvalidArgumentError: If data is None or not byte-like
            UplinkError: After the upload has been aborted
        """
        payload = _as_bytes(data, length)
        result = self._write_call(payload)
        if result.error is not None:
            try:
                self._abort_after_failed_write()
            except BaseException:
                result.release()
                raise
        return channel.take(result)

    def write_all(self, data: WriteSource, chunk_size: int = 0) -> int:
        """
        Write every byte of `data`, looping over partial writes.

        Args:
            data: Bytes to send
            chunk_size: Max bytes offered per write call (0 = everything left)

        Returns:
            Total bytes written, always len(data) on success
        """
        payload = memoryview(_as_bytes(data))
        total = 0
        while total < len(payload):
            end = len(payload) if chunk_size <= 0 else min(total + chunk_size, len(payload))
            written = self.write(payload[total:end])
            if written <= 0:
                raise RuntimeError(
                    f"{self.kind} stalled: boundary accepted no bytes at offset {total}"
                )
            total += written
        return total

    def commit(self) -> None:
        channel.check(self._commit_call())
        self._state = TransferState.COMMITTED
        self._log.debug("Committed")

    def abort(self) -> None:
        channel.check(self._abort_call())
        self._state = TransferState.ABORTED
        self._log.debug("Aborted")

    def _abort_after_failed_write(self) -> None:
        try:
            self.abort()
        except UplinkError as error:
            self._log.warning(
                "Abort after failed write did not succeed",
                error=error.to_dict(),
            )

    def _abort_unfinished(self) -> None:
        """Scope exit after an exception: abort silently if still open."""
        if self.is_open:
            self.abort()

    def _abort_abandoned(self) -> None:
        """Normal scope exit without commit or abort."""
        if self.is_open:
            self._log.warning("Neither committed nor aborted before scope exit; aborting")
            self.abort()


class Upload(_WriteStream):
    """
    Single-object write stream.

    Usage:
        with project.upload_object("photos", "cat.jpg") as upload:
            upload.write_all(data)
            upload.set_custom_metadata({"camera": "x100"})
            upload.commit()
    """

    __slots__ = ()

    kind = "upload"

    @property
    def handle(self) -> UploadHandle:
        return self._lease.handle

    def _write_call(self, data: bytes) -> BoundaryResult[int]:
        return self._boundary.upload_write(self.handle, data)

    def _commit_call(self) -> BoundaryResult[None]:
        return self._boundary.upload_commit(self.handle)

    def _abort_call(self) -> BoundaryResult[None]:
        return self._boundary.upload_abort(self.handle)

    def set_custom_metadata(self, custom: Optional[Mapping[Any, Any]]) -> None:
        """Replace the full custom metadata set; the last call before commit wins."""
        channel.check(self._boundary.upload_set_custom_metadata(
            self.handle, normalize_custom_metadata(custom),
        ))

    def info(self) -> Object:
        return channel.take(self._boundary.upload_info(self.handle))


class PartUpload(_WriteStream):
    """One part of a multipart upload, streamed and committed independently."""

    __slots__ = ()

    kind = "part_upload"

    @property
    def handle(self) -> PartUploadHandle:
        return self._lease.handle

    def _write_call(self, data: bytes) -> BoundaryResult[int]:
        return self._boundary.part_upload_write(self.handle, data)

    def _commit_call(self) -> BoundaryResult[None]:
        return self._boundary.part_upload_commit(self.handle)

    def _abort_call(self) -> BoundaryResult[None]:
        return self._boundary.part_upload_abort(self.handle)

    def set_etag(self, etag: str) -> None:
        if etag is None:
            raise InvalidArgumentError("etag", "must not be None")
        channel.check(self._boundary.part_upload_set_etag(self.handle, etag))

    def info(self) -> UploadPart:
        return channel.take(self._boundary.part_upload_info(self.handle))


# =============================================================================
# DOWNLOAD
# =============================================================================
class Download:
    """
    Object read stream.

    Usage:
        with project.download_object("photos", "cat.jpg") as download:
            buffer = bytearray()
            eof = False
            while not eof:
                _, eof = download.read(buffer, 32 * 1024)
    """

    __slots__ = ("_boundary", "_lease")

    def __init__(self, boundary: Boundary, lease: Lease[DownloadHandle]) -> None:
        self._boundary = boundary
        self._lease = lease

    @property
    def handle(self) -> DownloadHandle:
        return self._lease.handle

    def read(self, buffer: MutableSequence[int], length: int) -> tuple[int, bool]:
        """
        Read up to `length` bytes and append them to `buffer`.

        Returns:
            (bytes_read, is_eof); bytes may accompany the EOF signal

        Raises:
            InvalidArgumentError: If buffer is None or cannot be extended
        """
        if buffer is None:
            raise InvalidArgumentError("buffer", "must not be None")
        if not hasattr(buffer, "extend"):
            raise InvalidArgumentError("buffer", f"{type(buffer).__name__} cannot be appended to")
        if length < 0:
            raise InvalidArgumentError("length", "must be >= 0")

        chunk = channel.read_chunk(self._boundary.download_read(self.handle, length))
        if chunk.data:
            buffer.extend(chunk.data)
        return len(chunk), chunk.eof

    def read_all(self, chunk_size: int = C.DEFAULT_CHUNK_SIZE) -> bytes:
        """Read until end-of-stream and return everything read."""
        if chunk_size <= 0:
            raise InvalidArgumentError("chunk_size", "must be > 0")
        buffer = bytearray()
        eof = False
        while not eof:
            _, eof = self.read(buffer, chunk_size)
        return bytes(buffer)

    def info(self) -> Object:
        return channel.take(self._boundary.download_info(self.handle))

    def close(self) -> None:
        channel.check(self._boundary.close_download(self.handle))
