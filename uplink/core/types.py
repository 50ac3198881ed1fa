"""
Core Type Definitions for the Uplink Binding

Implements the Result/Either monad used by the boundary channel and the
opaque handle newtypes that stand in for foreign resources.

Design Principles:
- A foreign handle is never dereferenced; it is only passed back across
  the boundary that produced it
- One handle type per resource kind, so a download handle cannot be
  handed to an upload call by accident
- Boundary outcomes are decoded into Ok/Err before they become exceptions
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Generic,
    Literal,
    TypeVar,
    Union,
)

# =============================================================================
# TYPE VARIABLES FOR GENERIC CONTAINERS
# =============================================================================
T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type
U = TypeVar("U")  # Transform result type


# =============================================================================
# RESULT MONAD
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """
    Success variant of Result monad.
    
    Immutable container for a successfully decoded boundary value.
    """
    
    value: T
    
    def is_ok(self) -> Literal[True]:
        return True
    
    def is_err(self) -> Literal[False]:
        return False
    
    def unwrap(self) -> T:
        """Extract value. Safe to call after is_ok() check."""
        return self.value
    
    def unwrap_or(self, default: T) -> T:
        """Return value, ignoring default."""
        return self.value
    
    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        """Apply transformation to success value."""
        return Ok(fn(self.value))
    
    def flat_map(self, fn: Callable[[T], Result[U, E]]) -> Result[U, E]:
        """Monadic bind for chaining fallible operations."""
        return fn(self.value)
    
    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """
    Failure variant of Result monad.
    
    Carries the typed error decoded from the boundary. Unwrapping an
    Err raises the carried error when it is an exception, so callers that
    prefer exceptions can write ``decode(result).unwrap()``.
    """
    
    error: E
    
    def is_ok(self) -> Literal[False]:
        return False
    
    def is_err(self) -> Literal[True]:
        return True
    
    def unwrap(self) -> Any:
        """
        Raise the carried error.
        
        Raises:
            The carried exception, or RuntimeError wrapping a non-exception error
        """
        if isinstance(self.error, BaseException):
            raise self.error
        raise RuntimeError(f"Called unwrap() on Err: {self.error}")
    
    def unwrap_or(self, default: T) -> T:
        """Return default value on error."""
        return default
    
    def map(self, fn: Callable[[Any], U]) -> Err[E]:
        """No-op on error variant - propagates error unchanged."""
        return self
    
    def flat_map(self, fn: Callable[[Any], Result[U, E]]) -> Err[E]:
        """Propagate error through monadic chain."""
        return self
    
    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Union type for pattern matching
Result = Union[Ok[T], Err[E]]


# =============================================================================
# OPAQUE FOREIGN HANDLES
# =============================================================================
@dataclass(frozen=True, slots=True)
class Handle:
    """
    Opaque reference to a resource living behind the boundary.
    
    The value is a pointer-sized integer meaningful only to the boundary
    that issued it (an address for the native library, a table key for
    the in-memory peer).
    """
    
    value: int
    
    def __bool__(self) -> bool:
        return self.value != 0
    
    def __repr__(self) -> str:
        return f"{type(self).__name__}(0x{self.value:x})"


@dataclass(frozen=True, slots=True, repr=False)
class AccessHandle(Handle):
    """Serialized-credential handle (satellite, API key, encryption context)."""


@dataclass(frozen=True, slots=True, repr=False)
class EncryptionKeyHandle(Handle):
    """Derived encryption key handle."""


@dataclass(frozen=True, slots=True, repr=False)
class ProjectHandle(Handle):
    """Open project session handle."""


@dataclass(frozen=True, slots=True, repr=False)
class UploadHandle(Handle):
    """Single-object write stream handle."""


@dataclass(frozen=True, slots=True, repr=False)
class PartUploadHandle(Handle):
    """Multipart part write stream handle."""


@dataclass(frozen=True, slots=True, repr=False)
class DownloadHandle(Handle):
    """Object read stream handle."""


@dataclass(frozen=True, slots=True, repr=False)
class IteratorHandle(Handle):
    """Base for pull-style cursor handles."""


@dataclass(frozen=True, slots=True, repr=False)
class BucketIteratorHandle(IteratorHandle):
    pass


@dataclass(frozen=True, slots=True, repr=False)
class ObjectIteratorHandle(IteratorHandle):
    pass


@dataclass(frozen=True, slots=True, repr=False)
class UploadIteratorHandle(IteratorHandle):
    pass


@dataclass(frozen=True, slots=True, repr=False)
class PartIteratorHandle(IteratorHandle):
    pass
