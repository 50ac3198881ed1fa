"""
Iterator Protocol: Pull-Style Listings over Buckets, Objects, Uploads, Parts

One shape for every listing:
    next()  -> advance; True when an element is available
    item()  -> the current element, valid only after next() returned True
    err()   -> the terminal error, or None after clean exhaustion

When next() returns False it probes the terminal error itself and raises
it, so a loop that ends quietly ended because the listing was exhausted.
Iterators are forward-only and cannot be restarted; resume a listing with
a fresh iterator and a cursor option.

Usage:
    with project.list_objects("photos", ListObjectsOptions(recursive=True)) as objects:
        for obj in objects:
            print(obj.key)
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generic, Iterator, Optional, TypeVar

from uplink.boundary import channel
from uplink.boundary.protocol import Boundary, BoundaryResult
from uplink.core.errors import UplinkError
from uplink.core.types import Err, IteratorHandle
from uplink.models import Bucket, Object, UploadInfo, UploadPart
from uplink.registry import Lease, ResourceRegistry, scoped

T = TypeVar("T")


class ListingIterator(Generic[T]):
    """Cursor over one listing; owned by the `with` block that opened it."""
    
    __slots__ = ("_boundary", "_lease", "_has_item")
    
    def __init__(self, boundary: Boundary, lease: Lease[IteratorHandle]) -> None:
        self._boundary = boundary
        self._lease = lease
        self._has_item = False
    
    def next(self) -> bool:
        """
        Advance to the next element.
        
        Raises:
            UplinkError: When the listing stopped because of a failure
        """
        handle = self._lease.handle
        self._has_item = self._boundary.iterator_next(handle)
        if not self._has_item:
            channel.check(self._boundary.iterator_err(handle))
        return self._has_item
    
    def item(self) -> T:
        if not self._has_item:
            raise LookupError("item() requires a preceding next() that returned True")
        return channel.take(self._boundary.iterator_item(self._lease.handle))
    
    def err(self) -> Optional[UplinkError]:
        """Terminal error of the listing without raising it."""
        result = self._boundary.iterator_err(self._lease.handle)
        try:
            decoded = channel.decode(result)
        finally:
            result.release()
        return decoded.error if isinstance(decoded, Err) else None
    
    def __iter__(self) -> Iterator[T]:
        while self.next():
            yield self.item()


class BucketIterator(ListingIterator[Bucket]):
    __slots__ = ()


class ObjectIterator(ListingIterator[Object]):
    __slots__ = ()


class UploadIterator(ListingIterator[UploadInfo]):
    __slots__ = ()


class UploadPartIterator(ListingIterator[UploadPart]):
    __slots__ = ()


@contextmanager
def open_listing(
    boundary: Boundary,
    registry: ResourceRegistry,
    result: BoundaryResult[IteratorHandle],
    kind: str,
    iterator_type: type[ListingIterator[T]],
) -> Iterator[ListingIterator[T]]:
    """Claim an iterator handle and free it when the block exits."""
    lease = registry.claim(result, kind)
    with scoped(lease, iterator_type(boundary, lease)) as iterator:
        yield iterator
