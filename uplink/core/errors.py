"""
Error Taxonomy for the Uplink Binding

Flat, code-indexed hierarchy mirroring the native library's error codes.

Design Principles:
- Every boundary failure becomes an UplinkError subclass chosen by code
- Unmapped codes fall back to InternalError so callers can always match
- The raw code and the boundary message travel verbatim (no rewriting)
- Local argument validation errors are a separate family, never confused
  with boundary-reported failures

Usage:
    try:
        project.stat_object("photos", "missing.jpg")
    except ObjectKeyNotFoundError as e:
        print(e.code, e.message)

    match channel.decode(result):
        case Ok(bucket):
            use(bucket)
        case Err(BucketNotFoundError() as e):
            create_it(e)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional

from uplink.core import constants as C


# =============================================================================
# ERROR CODE ENUMERATION
# =============================================================================
class ErrorCode(IntEnum):
    """
    Numeric codes reported by the boundary.
    
    Codes are grouped by subsystem:
    - 0x0x: Generic / quota errors
    - 0x1x: Bucket errors
    - 0x2x: Object and upload errors
    - 0x3x: Edge (gateway) errors
    
    EOF is not an error; it is listed so the sentinel has a name.
    """
    
    EOF = C.EOF
    
    INTERNAL = C.UPLINK_ERROR_INTERNAL
    CANCELED = C.UPLINK_ERROR_CANCELED
    INVALID_HANDLE = C.UPLINK_ERROR_INVALID_HANDLE
    TOO_MANY_REQUESTS = C.UPLINK_ERROR_TOO_MANY_REQUESTS
    BANDWIDTH_LIMIT_EXCEEDED = C.UPLINK_ERROR_BANDWIDTH_LIMIT_EXCEEDED
    STORAGE_LIMIT_EXCEEDED = C.UPLINK_ERROR_STORAGE_LIMIT_EXCEEDED
    SEGMENTS_LIMIT_EXCEEDED = C.UPLINK_ERROR_SEGMENTS_LIMIT_EXCEEDED
    
    BUCKET_NAME_INVALID = C.UPLINK_ERROR_BUCKET_NAME_INVALID
    BUCKET_ALREADY_EXISTS = C.UPLINK_ERROR_BUCKET_ALREADY_EXISTS
    BUCKET_NOT_EMPTY = C.UPLINK_ERROR_BUCKET_NOT_EMPTY
    BUCKET_NOT_FOUND = C.UPLINK_ERROR_BUCKET_NOT_FOUND
    
    OBJECT_KEY_INVALID = C.UPLINK_ERROR_OBJECT_KEY_INVALID
    OBJECT_NOT_FOUND = C.UPLINK_ERROR_OBJECT_NOT_FOUND
    UPLOAD_DONE = C.UPLINK_ERROR_UPLOAD_DONE
    
    EDGE_AUTH_DIAL_FAILED = C.EDGE_ERROR_AUTH_DIAL_FAILED
    EDGE_REGISTER_ACCESS_FAILED = C.EDGE_ERROR_REGISTER_ACCESS_FAILED
    
    @classmethod
    def lookup(cls, code: int) -> Optional[ErrorCode]:
        """Return the enum member for a raw code, or None if unmapped."""
        try:
            return cls(code)
        except ValueError:
            return None


# =============================================================================
# BASE ERROR CLASS
# =============================================================================
@dataclass(eq=False)
class UplinkError(Exception):
    """
    Base class for every error reported by the boundary.
    
    Attributes:
        code: Raw numeric code exactly as the boundary reported it
        message: Boundary-supplied message, verbatim
        context: Optional local fields for logging (operation, bucket, key)
    """
    
    code: int
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    
    def __post_init__(self) -> None:
        # Initialize Exception base class with message
        super().__init__(self.message)
    
    @property
    def kind(self) -> Optional[ErrorCode]:
        """Named code, or None when the boundary used an unmapped code."""
        return ErrorCode.lookup(self.code)
    
    def with_context(self, **kwargs: Any) -> UplinkError:
        """Return a copy of this error with extra context fields."""
        return type(self)(
            code=self.code,
            message=self.message,
            context={**self.context, **kwargs},
        )
    
    def to_dict(self) -> dict[str, Any]:
        """Serialize error to dictionary for structured logs."""
        kind = self.kind
        return {
            "error": type(self).__name__,
            "code": kind.name if kind is not None else "UNMAPPED",
            "code_value": self.code,
            "message": self.message,
            "context": self.context,
        }
    
    def __str__(self) -> str:
        return self.message
    
    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code:#x}, "
            f"message={self.message!r})"
        )
    
    def __reduce__(self) -> tuple[Any, ...]:
        return (type(self), (self.code, self.message, self.context))


class InternalError(UplinkError):
    """Generic failure; also the fallback for unmapped codes."""


class CanceledError(UplinkError):
    """Operation was canceled."""


class InvalidHandleError(UplinkError):
    """Handle passed to the boundary is unknown or already freed."""


class TooManyRequestsError(UplinkError):
    """Rate limited by the satellite; callers are expected to back off and retry."""


class BandwidthLimitExceededError(UplinkError):
    pass


class StorageLimitExceededError(UplinkError):
    pass


class SegmentsLimitExceededError(UplinkError):
    pass


class BucketNameInvalidError(UplinkError):
    pass


class BucketAlreadyExistsError(UplinkError):
    pass


class BucketNotEmptyError(UplinkError):
    pass


class BucketNotFoundError(UplinkError):
    pass


class ObjectKeyInvalidError(UplinkError):
    pass


class ObjectKeyNotFoundError(UplinkError):
    pass


class UploadDoneError(UplinkError):
    """Upload was already committed or aborted."""


class EdgeAuthDialFailedError(UplinkError):
    pass


class EdgeRegisterAccessFailedError(UplinkError):
    pass


CODE_TO_ERROR: dict[int, type[UplinkError]] = {
    ErrorCode.INTERNAL: InternalError,
    ErrorCode.CANCELED: CanceledError,
    ErrorCode.INVALID_HANDLE: InvalidHandleError,
    ErrorCode.TOO_MANY_REQUESTS: TooManyRequestsError,
    ErrorCode.BANDWIDTH_LIMIT_EXCEEDED: BandwidthLimitExceededError,
    ErrorCode.STORAGE_LIMIT_EXCEEDED: StorageLimitExceededError,
    ErrorCode.SEGMENTS_LIMIT_EXCEEDED: SegmentsLimitExceededError,
    ErrorCode.BUCKET_NAME_INVALID: BucketNameInvalidError,
    ErrorCode.BUCKET_ALREADY_EXISTS: BucketAlreadyExistsError,
    ErrorCode.BUCKET_NOT_EMPTY: BucketNotEmptyError,
    ErrorCode.BUCKET_NOT_FOUND: BucketNotFoundError,
    ErrorCode.OBJECT_KEY_INVALID: ObjectKeyInvalidError,
    ErrorCode.OBJECT_NOT_FOUND: ObjectKeyNotFoundError,
    ErrorCode.UPLOAD_DONE: UploadDoneError,
    ErrorCode.EDGE_AUTH_DIAL_FAILED: EdgeAuthDialFailedError,
    ErrorCode.EDGE_REGISTER_ACCESS_FAILED: EdgeRegisterAccessFailedError,
}


def error_from_code(code: int, message: str) -> UplinkError:
    """
    Build the typed error for a boundary code.
    
    Unmapped codes produce InternalError carrying the original code.
    """
    error_type = CODE_TO_ERROR.get(code, InternalError)
    return error_type(code=code, message=message)


# =============================================================================
# LOCAL ERRORS (NEVER REPORTED BY THE BOUNDARY)
# =============================================================================
class InvalidArgumentError(ValueError):
    """
    Argument rejected locally, before any boundary call was made.
    
    Kept outside the UplinkError family so that ``except UplinkError``
    never catches a caller's programming mistake.
    """
    
    def __init__(self, argument: str, reason: str) -> None:
        super().__init__(f"{argument}: {reason}")
        self.argument = argument
        self.reason = reason


class HandleReleasedError(RuntimeError):
    """An owned foreign resource was released a second time."""
    
    def __init__(self, kind: str, token: int) -> None:
        super().__init__(f"{kind} resource #{token} was already released")
        self.kind = kind
        self.token = token
