"""
Value Objects and Option Records

Everything here is plain data: results decoded from the boundary (Bucket,
Object, UploadInfo, UploadPart) and the option records callers hand to
Project operations. None of these own foreign memory and none need closing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Union

from uplink.core import constants as C

# Unix seconds or an aware/naive datetime; converted at the boundary.
Timestamp = Union[int, float, datetime]


def to_unix(value: Optional[Timestamp]) -> int:
    """Convert an optional timestamp to unix seconds (0 = unset)."""
    if value is None:
        return 0
    if isinstance(value, datetime):
        return int(value.timestamp())
    return int(value)


def normalize_custom_metadata(custom: Optional[Mapping[Any, Any]]) -> dict[str, str]:
    """
    Stringify custom metadata and drop entries whose key or value is None.
    
    The resulting mapping is exactly what crosses the boundary: its length
    is the entry count marshalled alongside the entry array.
    """
    if not custom:
        return {}
    normalized: dict[str, str] = {}
    for key, value in custom.items():
        if key is None or value is None:
            continue
        normalized[str(key)] = str(value)
    return normalized


# =============================================================================
# DECODED VALUES
# =============================================================================
@dataclass(frozen=True, slots=True)
class Bucket:
    """Named container. `created` is unix seconds."""
    
    name: str
    created: int = 0


@dataclass(frozen=True, slots=True)
class SystemMetadata:
    """
    System metadata of an object.
    
    All fields are zero unless the listing asked for system metadata or the
    call (stat, upload info, download info) returns it naturally.
    """
    
    created: int = 0
    expires: int = 0
    content_length: int = 0


@dataclass(frozen=True, slots=True)
class Object:
    """
    Object (or synthetic prefix entry) as reported by the boundary.
    
    `custom` is ordered by key.
    """
    
    key: str
    is_prefix: bool = False
    system: SystemMetadata = field(default_factory=SystemMetadata)
    custom: dict[str, str] = field(default_factory=dict)
    
    def __hash__(self) -> int:
        return hash((self.key, self.is_prefix, self.system, frozenset(self.custom.items())))
    
    @property
    def created(self) -> int:
        return self.system.created
    
    @property
    def expires(self) -> int:
        return self.system.expires
    
    @property
    def content_length(self) -> int:
        return self.system.content_length


@dataclass(frozen=True, slots=True)
class UploadInfo:
    """Pending multipart upload; the upload_id addresses later part/commit calls."""
    
    upload_id: str
    key: str
    is_prefix: bool = False
    system: SystemMetadata = field(default_factory=SystemMetadata)
    custom: dict[str, str] = field(default_factory=dict)
    
    def __hash__(self) -> int:
        return hash((
            self.upload_id, self.key, self.is_prefix, self.system,
            frozenset(self.custom.items()),
        ))
    
    @property
    def created(self) -> int:
        return self.system.created
    
    @property
    def expires(self) -> int:
        return self.system.expires
    
    @property
    def content_length(self) -> int:
        return self.system.content_length


@dataclass(frozen=True, slots=True)
class UploadPart:
    """Committed (or in-flight) part of a multipart upload."""
    
    part_number: int
    size: int = 0
    modified: int = 0
    etag: str = ""


@dataclass(frozen=True, slots=True)
class EdgeCredentials:
    """Raw S3-compatible credential triple returned by the edge service."""
    
    access_key_id: str
    secret_key: str
    endpoint: str


# =============================================================================
# SHARING
# =============================================================================
@dataclass(frozen=True, slots=True)
class Permission:
    """
    Capabilities granted to a shared access.
    
    The validity window is enforced by the service; requests outside it
    fail with InternalError rather than a dedicated kind.
    """
    
    allow_download: bool = False
    allow_upload: bool = False
    allow_list: bool = False
    allow_delete: bool = False
    not_before: Optional[Timestamp] = None
    not_after: Optional[Timestamp] = None
    
    @classmethod
    def full(cls) -> Permission:
        return cls(
            allow_download=True,
            allow_upload=True,
            allow_list=True,
            allow_delete=True,
        )
    
    @property
    def is_empty(self) -> bool:
        return not (
            self.allow_download or self.allow_upload
            or self.allow_list or self.allow_delete
        )


@dataclass(frozen=True, slots=True)
class SharePrefix:
    """Restriction to one bucket, optionally narrowed to a key prefix."""
    
    bucket: str
    prefix: Optional[str] = None


# =============================================================================
# OPERATION OPTIONS
# =============================================================================
@dataclass(frozen=True, slots=True)
class UploadOptions:
    """`expires` is the object expiration (unix seconds or datetime)."""
    
    expires: Optional[Timestamp] = None


@dataclass(frozen=True, slots=True)
class DownloadOptions:
    """Byte range to fetch; a negative length means "to the end"."""
    
    offset: int = 0
    length: int = C.WHOLE_OBJECT_LENGTH


@dataclass(frozen=True, slots=True)
class ListBucketsOptions:
    cursor: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ListObjectsOptions:
    """
    Object listing options.
    
    Without `system`/`custom` the listed objects carry zero-valued metadata
    even though the objects have it.
    """
    
    prefix: Optional[str] = None
    cursor: Optional[str] = None
    recursive: bool = False
    system: bool = False
    custom: bool = False


@dataclass(frozen=True, slots=True)
class ListUploadsOptions:
    prefix: Optional[str] = None
    cursor: Optional[str] = None
    recursive: bool = False
    system: bool = False
    custom: bool = False


@dataclass(frozen=True, slots=True)
class ListUploadPartsOptions:
    """Resume strictly after part number `cursor` (0 = from the start)."""
    
    cursor: int = 0


@dataclass(frozen=True, slots=True)
class CommitUploadOptions:
    custom_metadata: Optional[Mapping[str, Any]] = None


# =============================================================================
# EDGE
# =============================================================================
@dataclass(frozen=True, slots=True)
class EdgeConfig:
    """Where and how to reach the edge auth service."""
    
    auth_service_address: str
    certificate_pem: Optional[str] = None
    insecure_unencrypted_connection: bool = False


@dataclass(frozen=True, slots=True)
class EdgeRegisterAccessOptions:
    is_public: bool = False


@dataclass(frozen=True, slots=True)
class ShareURLOptions:
    """`raw=True` links the content directly, otherwise a landing page."""
    
    raw: bool = False
