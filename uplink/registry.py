"""
Resource Registry: Single-Owner Release Discipline for Foreign Handles

Every handle-producing boundary call (access, project, upload, part upload,
download, iterator) is claimed here and turned into a Lease. The lease is
the only object allowed to run the result's release callable, and it runs
it exactly once.

Guarantees:
    - A failed handle-producing call is released immediately and raised
    - A successful one is tracked until its owning scope releases it
    - Releasing twice raises HandleReleasedError instead of double-freeing
    - Using a handle after its lease ended raises HandleReleasedError
      instead of passing a dangling pointer to the native library

Thread-safety:
    The registry table is guarded by a threading.Lock. A single lease is
    owned by one scope; the lock only protects the shared table.

Usage:
    lease = registry.claim(boundary.open_project(access), "project")
    try:
        use(lease.handle)
    finally:
        lease.release()

    assert not registry.outstanding()  # test leak check
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Generic, Iterator, Optional, TypeVar

from uplink.boundary import channel
from uplink.boundary.protocol import BoundaryResult
from uplink.core.errors import HandleReleasedError, UplinkError
from uplink.core.types import Handle

logger = logging.getLogger(__name__)

H = TypeVar("H", bound=Handle)
R = TypeVar("R")


# =============================================================================
# LEASE
# =============================================================================
@dataclass
class Lease(Generic[H]):
    """
    Ownership of one foreign handle.
    
    Obtained from ResourceRegistry.claim(); released exactly once by the
    scope that claimed it.
    """
    
    kind: str
    token: int
    _handle: H = field(repr=False)
    _registry: ResourceRegistry = field(repr=False)
    
    @property
    def is_live(self) -> bool:
        return self._registry.is_live(self.token)
    
    @property
    def handle(self) -> H:
        """
        The handle, if the lease is still held.
        
        Raises:
            HandleReleasedError: After the lease was released
        """
        if not self._registry.is_live(self.token):
            raise HandleReleasedError(self.kind, self.token)
        return self._handle
    
    def release(self) -> None:
        self._registry.release(self.token)


# =============================================================================
# REGISTRY
# =============================================================================
@dataclass(slots=True)
class _Entry:
    kind: str
    release_fn: Callable[[], None]


class ResourceRegistry:
    """
    Table of live foreign resources keyed by a monotonically issued token.
    
    Tokens are never reused, so a stale token can always be told apart
    from a live one.
    """
    
    __slots__ = ("_entries", "_lock", "_next_token")
    
    def __init__(self) -> None:
        self._entries: dict[int, _Entry] = {}
        self._lock = threading.Lock()
        self._next_token = 1
    
    def acquire(self, kind: str, release_fn: Callable[[], None]) -> int:
        """Track a live resource; returns the token that releases it."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._entries[token] = _Entry(kind=kind, release_fn=release_fn)
        logger.debug("Acquired %s #%d", kind, token)
        return token
    
    def release(self, token: int) -> None:
        """
        Run the release callable of `token` exactly once.
        
        Raises:
            HandleReleasedError: If the token was already released or never issued
        """
        with self._lock:
            entry = self._entries.pop(token, None)
        if entry is None:
            raise HandleReleasedError("unknown", token)
        logger.debug("Releasing %s #%d", entry.kind, token)
        entry.release_fn()
    
    def is_live(self, token: int) -> bool:
        with self._lock:
            return token in self._entries
    
    def claim(self, result: BoundaryResult[H], kind: str) -> Lease[H]:
        """
        Take ownership of a handle-producing result.
        
        On failure the result is released here and the typed error raised;
        on success the caller receives a Lease and owns the release.
        
        Raises:
            UplinkError: When the boundary reported a failure
        """
        if result.error is not None:
            try:
                raise channel.to_error(result.error)
            finally:
                result.release()
        handle = result.value
        if handle is None:
            result.release()
            raise ValueError(f"boundary returned no {kind} handle")
        token = self.acquire(kind, result.release)
        return Lease(kind=kind, token=token, _handle=handle, _registry=self)
    
    def outstanding(self) -> list[str]:
        """Kinds of all resources still held, in acquisition order."""
        with self._lock:
            return [entry.kind for _, entry in sorted(self._entries.items())]
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# =============================================================================
# PROCESS DEFAULT
# =============================================================================
_default_registry = ResourceRegistry()


def default_registry() -> ResourceRegistry:
    return _default_registry


def outstanding(registry: Optional[ResourceRegistry] = None) -> list[str]:
    """
    Leak-check hook for tests: kinds of resources not yet released.
    
    Not part of the operational API.
    """
    return (registry if registry is not None else _default_registry).outstanding()


# =============================================================================
# SCOPED OWNERSHIP
# =============================================================================
@contextmanager
def scoped(
    lease: Lease,
    resource: R,
    finalize: Optional[Callable[[], None]] = None,
    on_error: Optional[Callable[[], None]] = None,
) -> Iterator[R]:
    """
    Yield `resource` and release `lease` on every exit path.
    
    `finalize` (close, abort) runs before the release; `on_error` replaces
    it when the block raised. On that path a failing cleanup is logged and
    the block's error propagates; otherwise the finalize error propagates.
    """
    try:
        yield resource
    except BaseException:
        cleanup = on_error if on_error is not None else finalize
        if cleanup is not None:
            try:
                cleanup()
            except UplinkError as error:
                logger.warning(
                    "Finalizing %s #%d failed while unwinding: %s",
                    lease.kind, lease.token, error,
                    extra={"error": error.to_dict()},
                )
        raise
    else:
        if finalize is not None:
            finalize()
    finally:
        lease.release()
