"""
Result/Error Channel: Decoding Boundary Outcomes

Every boundary call hands back a BoundaryResult. This module is the only
place that turns one into a Python value or a typed exception, and the only
place that runs the result's release callable for value-returning calls.

Decoding rules:
    - error is None            -> success
    - error.code == EOF (-1)   -> end-of-stream, not a failure
    - any other code           -> typed UplinkError via the code table,
                                  InternalError when unmapped

Usage:
    bucket = channel.take(boundary.stat_bucket(project, "photos"))

    with channel.consume(boundary.upload_info(upload)) as obj:
        log(obj.key)

    match channel.decode(result):
        case Ok(obj):
            ...
        case Err(ObjectKeyNotFoundError()):
            ...
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, TypeVar

from uplink.boundary.protocol import BoundaryResult, RawError
from uplink.core.errors import UplinkError, error_from_code
from uplink.core.types import Err, Ok, Result

T = TypeVar("T")


# =============================================================================
# ERROR TRANSLATION
# =============================================================================
def to_error(raw: RawError) -> UplinkError:
    """Typed error for a raw boundary error; code and message kept verbatim."""
    return error_from_code(raw.code, raw.message)


def raise_for(raw: Optional[RawError]) -> None:
    """Raise the typed error for `raw` unless it is absent or the EOF sentinel."""
    if raw is None or raw.is_eof:
        return
    raise to_error(raw)


def decode(result: BoundaryResult[T]) -> Result[Optional[T], UplinkError]:
    """
    Decode without raising and without releasing.
    
    EOF decodes to Ok; use read_chunk() where the sentinel matters.
    """
    if result.error is None or result.error.is_eof:
        return Ok(result.value)
    return Err(to_error(result.error))


# =============================================================================
# SCOPED CONSUMPTION
# =============================================================================
@contextmanager
def consume(result: BoundaryResult[T]) -> Iterator[Optional[T]]:
    """
    Yield the decoded value and release the result on every exit path.
    
    Raises:
        UplinkError: Typed error when the boundary reported a failure
    """
    try:
        match decode(result):
            case Ok(value):
                yield value
            case Err(error):
                raise error
    finally:
        result.release()


def take(result: BoundaryResult[T]) -> Optional[T]:
    """Extract the value of a result and release it immediately."""
    with consume(result) as value:
        return value


def check(result: BoundaryResult[None]) -> None:
    """Release an error-only result, raising if it carried a failure."""
    with consume(result):
        pass


# =============================================================================
# READ OUTCOMES
# =============================================================================
@dataclass(frozen=True, slots=True)
class ReadChunk:
    """Bytes returned by one read call, plus the end-of-stream flag."""
    
    data: bytes
    eof: bool
    
    def __len__(self) -> int:
        return len(self.data)


def read_chunk(result: BoundaryResult[bytes]) -> ReadChunk:
    """
    Decode a read result.
    
    The EOF flag comes only from the sentinel code; a zero-length read
    without the sentinel is not the end of the stream.
    """
    with consume(result) as data:
        eof = result.error is not None and result.error.is_eof
        return ReadChunk(data=bytes(data or b""), eof=eof)
