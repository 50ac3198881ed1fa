"""
Boundary Protocol Definitions: The Native Client Contract

Structural subtyping protocol (PEP 544) for the peer that implements the
actual storage network client. Two implementations ship with the package:
- NativeBoundary: ctypes calls into the precompiled uplink-c library
- InMemoryBoundary: a single-process satellite used by the test suite

Contract:
    - Every call returns a BoundaryResult pairing a value (or None) with a
      RawError (or None) and a release callable
    - The release callable must run exactly once, whichever branch is taken
    - Handles are opaque; they are only ever handed back to the boundary
      that issued them
    - Iterators follow the pull shape next() -> bool, item(), err(), free

Complexity Analysis:
    - Dispatch overhead: O(1); actual cost is a network round trip
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import (
    Callable,
    Generic,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    TypeVar,
    runtime_checkable,
)

from uplink.core import constants as C
from uplink.core.config import UplinkConfig
from uplink.core.types import (
    AccessHandle,
    BucketIteratorHandle,
    DownloadHandle,
    EncryptionKeyHandle,
    IteratorHandle,
    ObjectIteratorHandle,
    PartIteratorHandle,
    PartUploadHandle,
    ProjectHandle,
    UploadHandle,
    UploadIteratorHandle,
)
from uplink.models import (
    Bucket,
    CommitUploadOptions,
    DownloadOptions,
    EdgeConfig,
    EdgeCredentials,
    EdgeRegisterAccessOptions,
    ListBucketsOptions,
    ListObjectsOptions,
    ListUploadPartsOptions,
    ListUploadsOptions,
    Object,
    Permission,
    SharePrefix,
    ShareURLOptions,
    UploadInfo,
    UploadOptions,
    UploadPart,
)


T = TypeVar("T")


def _noop() -> None:
    return None


# =============================================================================
# RESULT SHAPE
# =============================================================================
@dataclass(frozen=True, slots=True)
class RawError:
    """Error as reported by the boundary: numeric code plus message."""
    
    code: int
    message: str = ""
    
    @property
    def is_eof(self) -> bool:
        return self.code == C.EOF


@dataclass(frozen=True, slots=True)
class BoundaryResult(Generic[T]):
    """
    Paired outcome of one boundary call.
    
    `release` frees whatever foreign memory the call allocated (the result
    wrapper and, for handle-producing calls, the resource itself). It is
    owned by whoever consumes the result; see uplink.boundary.channel.
    """
    
    value: Optional[T] = None
    error: Optional[RawError] = None
    release: Callable[[], None] = _noop
    
    @property
    def ok(self) -> bool:
        return self.error is None


# =============================================================================
# BOUNDARY PROTOCOL
# =============================================================================
@runtime_checkable
class Boundary(Protocol):
    """
    Native client contract consumed by the session and transfer layers.
    
    Implementations are stateless from the binding's point of view: all
    state lives behind the handles they return.
    """
    
    # -- access ---------------------------------------------------------------
    @abstractmethod
    def parse_access(self, serialized: str) -> BoundaryResult[AccessHandle]:
        ...
    
    @abstractmethod
    def request_access_with_passphrase(
        self,
        satellite_address: str,
        api_key: str,
        passphrase: str,
        config: Optional[UplinkConfig] = None,
    ) -> BoundaryResult[AccessHandle]:
        """Network round trip to the satellite; config=None uses defaults."""
        ...
    
    @abstractmethod
    def access_share(
        self,
        access: AccessHandle,
        permission: Permission,
        prefixes: Sequence[SharePrefix],
    ) -> BoundaryResult[AccessHandle]:
        ...
    
    @abstractmethod
    def access_serialize(self, access: AccessHandle) -> BoundaryResult[str]:
        ...
    
    @abstractmethod
    def access_satellite_address(self, access: AccessHandle) -> BoundaryResult[str]:
        ...
    
    @abstractmethod
    def access_override_encryption_key(
        self,
        access: AccessHandle,
        bucket: str,
        prefix: str,
        key: EncryptionKeyHandle,
    ) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def derive_encryption_key(
        self,
        passphrase: str,
        salt: bytes,
    ) -> BoundaryResult[EncryptionKeyHandle]:
        ...
    
    # -- project --------------------------------------------------------------
    @abstractmethod
    def open_project(
        self,
        access: AccessHandle,
        config: Optional[UplinkConfig] = None,
    ) -> BoundaryResult[ProjectHandle]:
        ...
    
    @abstractmethod
    def close_project(self, project: ProjectHandle) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def revoke_access(
        self,
        project: ProjectHandle,
        access: AccessHandle,
    ) -> BoundaryResult[None]:
        ...
    
    # -- buckets --------------------------------------------------------------
    @abstractmethod
    def stat_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        ...
    
    @abstractmethod
    def create_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        ...
    
    @abstractmethod
    def ensure_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        ...
    
    @abstractmethod
    def delete_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        ...
    
    @abstractmethod
    def delete_bucket_with_objects(
        self,
        project: ProjectHandle,
        bucket: str,
    ) -> BoundaryResult[Bucket]:
        ...
    
    @abstractmethod
    def list_buckets(
        self,
        project: ProjectHandle,
        options: Optional[ListBucketsOptions] = None,
    ) -> BoundaryResult[BucketIteratorHandle]:
        """Never fails directly; listing errors surface through iterator_err."""
        ...
    
    # -- objects --------------------------------------------------------------
    @abstractmethod
    def stat_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
    ) -> BoundaryResult[Object]:
        ...
    
    @abstractmethod
    def delete_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
    ) -> BoundaryResult[Object]:
        """Value is None (and error is None) when the key did not exist."""
        ...
    
    @abstractmethod
    def update_object_metadata(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        custom: Mapping[str, str],
    ) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def copy_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        new_bucket: str,
        new_key: str,
    ) -> BoundaryResult[Object]:
        ...
    
    @abstractmethod
    def move_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        new_bucket: str,
        new_key: str,
    ) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def list_objects(
        self,
        project: ProjectHandle,
        bucket: str,
        options: Optional[ListObjectsOptions] = None,
    ) -> BoundaryResult[ObjectIteratorHandle]:
        ...
    
    # -- single upload --------------------------------------------------------
    @abstractmethod
    def upload_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        options: Optional[UploadOptions] = None,
    ) -> BoundaryResult[UploadHandle]:
        ...
    
    @abstractmethod
    def upload_write(self, upload: UploadHandle, data: bytes) -> BoundaryResult[int]:
        """Value is the number of bytes accepted, possibly fewer than len(data)."""
        ...
    
    @abstractmethod
    def upload_commit(self, upload: UploadHandle) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def upload_abort(self, upload: UploadHandle) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def upload_set_custom_metadata(
        self,
        upload: UploadHandle,
        custom: Mapping[str, str],
    ) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def upload_info(self, upload: UploadHandle) -> BoundaryResult[Object]:
        ...
    
    # -- download -------------------------------------------------------------
    @abstractmethod
    def download_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        options: Optional[DownloadOptions] = None,
    ) -> BoundaryResult[DownloadHandle]:
        ...
    
    @abstractmethod
    def download_read(self, download: DownloadHandle, length: int) -> BoundaryResult[bytes]:
        """
        Read up to `length` bytes.
        
        The value holds the bytes read by this call even when the error is
        the EOF sentinel.
        """
        ...
    
    @abstractmethod
    def download_info(self, download: DownloadHandle) -> BoundaryResult[Object]:
        ...
    
    @abstractmethod
    def close_download(self, download: DownloadHandle) -> BoundaryResult[None]:
        ...
    
    # -- multipart ------------------------------------------------------------
    @abstractmethod
    def begin_upload(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        options: Optional[UploadOptions] = None,
    ) -> BoundaryResult[UploadInfo]:
        ...
    
    @abstractmethod
    def commit_upload(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
        options: Optional[CommitUploadOptions] = None,
    ) -> BoundaryResult[Object]:
        ...
    
    @abstractmethod
    def abort_upload(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
    ) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def upload_part(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
    ) -> BoundaryResult[PartUploadHandle]:
        ...
    
    @abstractmethod
    def part_upload_write(self, part: PartUploadHandle, data: bytes) -> BoundaryResult[int]:
        ...
    
    @abstractmethod
    def part_upload_commit(self, part: PartUploadHandle) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def part_upload_abort(self, part: PartUploadHandle) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def part_upload_set_etag(self, part: PartUploadHandle, etag: str) -> BoundaryResult[None]:
        ...
    
    @abstractmethod
    def part_upload_info(self, part: PartUploadHandle) -> BoundaryResult[UploadPart]:
        ...
    
    @abstractmethod
    def list_uploads(
        self,
        project: ProjectHandle,
        bucket: str,
        options: Optional[ListUploadsOptions] = None,
    ) -> BoundaryResult[UploadIteratorHandle]:
        ...
    
    @abstractmethod
    def list_upload_parts(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
        options: Optional[ListUploadPartsOptions] = None,
    ) -> BoundaryResult[PartIteratorHandle]:
        ...
    
    # -- iterators ------------------------------------------------------------
    @abstractmethod
    def iterator_next(self, iterator: IteratorHandle) -> bool:
        ...
    
    @abstractmethod
    def iterator_item(self, iterator: IteratorHandle) -> BoundaryResult[object]:
        """Current element (Bucket, Object, UploadInfo or UploadPart)."""
        ...
    
    @abstractmethod
    def iterator_err(self, iterator: IteratorHandle) -> BoundaryResult[None]:
        ...
    
    # -- edge -----------------------------------------------------------------
    @abstractmethod
    def edge_register_access(
        self,
        config: EdgeConfig,
        access: AccessHandle,
        options: Optional[EdgeRegisterAccessOptions] = None,
    ) -> BoundaryResult[EdgeCredentials]:
        ...
    
    @abstractmethod
    def edge_join_share_url(
        self,
        base_url: str,
        access_key_id: str,
        bucket: str,
        key: str,
        options: Optional[ShareURLOptions] = None,
    ) -> BoundaryResult[str]:
        ...
    
    # -- diagnostics ----------------------------------------------------------
    @abstractmethod
    def universe_is_empty(self) -> bool:
        """True when no foreign allocation made by this boundary is still live."""
        ...
