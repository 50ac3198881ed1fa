"""
In-Memory Boundary: Single-Process Satellite for Development and Testing

Implements the Boundary protocol without the native library:
- Access grants with permissions, prefix restrictions, validity windows
  and revocation
- Buckets and objects with system and custom metadata and expiration
- Single-object uploads, ranged downloads, multipart uploads
- Pull-style iterators over buckets, objects, pending uploads and parts
- Edge credential registration and share URL templating

Design Principles:
    - Same error codes and messages shape as the native library, so the
      binding above cannot tell the two apart
    - Every result allocates a tracked slot that its release frees, so
      universe_is_empty() catches leaks exactly like the native check
    - Fault injection (inject_fault) for error paths the happy-path
      satellite never produces
    - Thread-safe via a single re-entrant lock

Example:
    boundary = InMemoryBoundary(api_keys={"key-1"})
    serialized = boundary.issue_access("key-1", "secret")

    with uplink.parse_access(serialized, boundary=boundary) as access:
        with access.open_project() as project:
            project.create_bucket("photos")
"""

from __future__ import annotations

import base64
import binascii
import functools
import hashlib
import itertools
import json
import re
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence
from urllib.parse import quote

from uplink.boundary.protocol import BoundaryResult, RawError
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
    SystemMetadata,
    UploadInfo,
    UploadOptions,
    UploadPart,
    normalize_custom_metadata,
    to_unix,
)


# =============================================================================
# CONSTANTS
# =============================================================================
DEFAULT_SATELLITE_ADDRESS: str = "127.0.0.1:7777"
DEFAULT_API_KEY: str = "test-api-key"
DEFAULT_EDGE_AUTH_ADDRESS: str = "auth.edge.test:7777"
DEFAULT_EDGE_ENDPOINT: str = "https://gateway.edge.test"

_BUCKET_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9.-]*[a-z0-9]$")


# =============================================================================
# INTERNAL RECORDS
# =============================================================================
class _Rejected(Exception):
    """Raised inside a call to return an error result instead."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


@dataclass(slots=True)
class _Grant:
    """Decoded access grant. `lineage` lists every ancestor id, root first."""
    grant_id: str
    satellite_address: str
    api_key: str
    passphrase: str
    permission: Permission = field(default_factory=Permission.full)
    prefixes: tuple[SharePrefix, ...] = ()
    lineage: tuple[str, ...] = ()
    overrides: dict[tuple[str, str], bytes] = field(default_factory=dict)

    def serialize(self) -> str:
        payload = {
            "id": self.grant_id,
            "satellite": self.satellite_address,
            "api_key": self.api_key,
            "passphrase": self.passphrase,
            "permission": {
                "download": self.permission.allow_download,
                "upload": self.permission.allow_upload,
                "list": self.permission.allow_list,
                "delete": self.permission.allow_delete,
                "not_before": to_unix(self.permission.not_before),
                "not_after": to_unix(self.permission.not_after),
            },
            "prefixes": [[p.bucket, p.prefix] for p in self.prefixes],
            "lineage": list(self.lineage),
        }
        raw = json.dumps(payload, sort_keys=True).encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    @classmethod
    def parse(cls, serialized: str) -> _Grant:
        padded = serialized + "=" * (-len(serialized) % 4)
        payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
        perm = payload["permission"]
        return cls(
            grant_id=payload["id"],
            satellite_address=payload["satellite"],
            api_key=payload["api_key"],
            passphrase=payload["passphrase"],
            permission=Permission(
                allow_download=perm["download"],
                allow_upload=perm["upload"],
                allow_list=perm["list"],
                allow_delete=perm["delete"],
                not_before=perm["not_before"] or None,
                not_after=perm["not_after"] or None,
            ),
            prefixes=tuple(SharePrefix(b, p) for b, p in payload["prefixes"]),
            lineage=tuple(payload["lineage"]),
        )

    def allows_key(self, bucket: str, key: Optional[str]) -> bool:
        if not self.prefixes:
            return True
        for restriction in self.prefixes:
            if restriction.bucket != bucket:
                continue
            if key is None or not restriction.prefix:
                return True
            if key.startswith(restriction.prefix):
                return True
        return False


@dataclass(slots=True)
class _Session:
    grant: _Grant
    config: Optional[UplinkConfig]
    closed: bool = False


@dataclass(slots=True)
class _StoredObject:
    key: str
    data: bytes
    created: int
    expires: int = 0
    custom: dict[str, str] = field(default_factory=dict)

    def describe(self, system: bool = True, custom: bool = True) -> Object:
        return Object(
            key=self.key,
            is_prefix=False,
            system=(
                SystemMetadata(self.created, self.expires, len(self.data))
                if system else SystemMetadata()
            ),
            custom=dict(sorted(self.custom.items())) if custom else {},
        )


@dataclass(slots=True)
class _BucketRecord:
    name: str
    created: int
    objects: dict[str, _StoredObject] = field(default_factory=dict)


@dataclass(slots=True)
class _PartRecord:
    part_number: int
    data: bytes
    modified: int
    etag: str = ""


@dataclass(slots=True)
class _PendingUpload:
    upload_id: str
    bucket: str
    key: str
    created: int
    expires: int = 0
    parts: dict[int, _PartRecord] = field(default_factory=dict)

    def describe(self, system: bool = True, custom: bool = True) -> UploadInfo:
        return UploadInfo(
            upload_id=self.upload_id,
            key=self.key,
            is_prefix=False,
            system=(
                SystemMetadata(self.created, self.expires, 0)
                if system else SystemMetadata()
            ),
            custom={},
        )


@dataclass(slots=True)
class _WriteStream:
    """Open upload or part upload. state: open / committed / aborted."""
    session: _Session
    bucket: str
    key: str
    buffer: bytearray = field(default_factory=bytearray)
    state: str = "open"
    expires: int = 0
    custom: dict[str, str] = field(default_factory=dict)
    created: int = 0
    upload_id: str = ""
    part_number: int = 0
    etag: str = ""


@dataclass(slots=True)
class _ReadStream:
    obj: _StoredObject
    data: bytes
    position: int = 0
    closed: bool = False


@dataclass(slots=True)
class _Cursor:
    items: list[Any]
    error: Optional[RawError] = None
    position: int = -1

    def current(self) -> Optional[Any]:
        if 0 <= self.position < len(self.items):
            return self.items[self.position]
        return None


@dataclass(slots=True)
class _Fault:
    code: int
    message: str
    remaining: int


def _boundary_call(fn: Callable[..., BoundaryResult]) -> Callable[..., BoundaryResult]:
    """Run a call under the lock, applying injected faults and rejections."""

    @functools.wraps(fn)
    def wrapper(self: InMemoryBoundary, *args: Any, **kwargs: Any) -> BoundaryResult:
        with self._lock:
            try:
                self._apply_fault(fn.__name__)
                return fn(self, *args, **kwargs)
            except _Rejected as rejected:
                return self._result(error=RawError(rejected.code, rejected.message))

    return wrapper


# =============================================================================
# IN-MEMORY BOUNDARY
# =============================================================================
class InMemoryBoundary:
    """
    Satellite, storage nodes and edge service folded into one object.

    Attributes controlling realism:
        write_limit: Max bytes accepted per write call (None = all)
        read_limit: Max bytes returned per read call (None = as requested)
        eof_with_data: Report EOF together with the final bytes instead of
            on the following call
    """

    __slots__ = (
        "satellite_address",
        "edge_auth_address",
        "edge_endpoint",
        "write_limit",
        "read_limit",
        "eof_with_data",
        "_api_keys",
        "_clock",
        "_lock",
        "_ids",
        "_allocations",
        "_accesses",
        "_keys",
        "_projects",
        "_uploads",
        "_parts",
        "_downloads",
        "_iterators",
        "_buckets",
        "_pending",
        "_revoked",
        "_faults",
        "_calls",
    )

    def __init__(
        self,
        satellite_address: str = DEFAULT_SATELLITE_ADDRESS,
        api_keys: Optional[Iterable[str]] = None,
        edge_auth_address: str = DEFAULT_EDGE_AUTH_ADDRESS,
        edge_endpoint: str = DEFAULT_EDGE_ENDPOINT,
        clock: Callable[[], float] = time.time,
        write_limit: Optional[int] = None,
        read_limit: Optional[int] = None,
        eof_with_data: bool = False,
    ) -> None:
        self.satellite_address = satellite_address
        self.edge_auth_address = edge_auth_address
        self.edge_endpoint = edge_endpoint
        self.write_limit = write_limit
        self.read_limit = read_limit
        self.eof_with_data = eof_with_data
        self._api_keys = set(api_keys) if api_keys is not None else {DEFAULT_API_KEY}
        self._clock = clock
        self._lock = threading.RLock()
        self._ids = itertools.count(1)

        # Live allocations: id -> kind
        self._allocations: dict[int, str] = {}

        # Handle tables: id -> record
        self._accesses: dict[int, _Grant] = {}
        self._keys: dict[int, bytes] = {}
        self._projects: dict[int, _Session] = {}
        self._uploads: dict[int, _WriteStream] = {}
        self._parts: dict[int, _WriteStream] = {}
        self._downloads: dict[int, _ReadStream] = {}
        self._iterators: dict[int, _Cursor] = {}

        # Satellite state
        self._buckets: dict[str, _BucketRecord] = {}
        self._pending: dict[str, _PendingUpload] = {}
        self._revoked: set[str] = set()
        self._faults: dict[str, _Fault] = {}
        self._calls: dict[str, int] = {}

    # -------------------------------------------------------------------------
    # Test Support
    # -------------------------------------------------------------------------

    def issue_access(
        self,
        api_key: Optional[str] = None,
        passphrase: str = "passphrase",
    ) -> str:
        """Serialized root access for `api_key`, as a satellite would issue it."""
        with self._lock:
            api_key = api_key or min(self._api_keys)
            return self._root_grant(api_key, passphrase).serialize()

    def inject_fault(
        self,
        operation: str,
        code: int,
        message: str = "injected failure",
        times: int = 1,
    ) -> None:
        """Make the next `times` calls of `operation` fail with `code`."""
        with self._lock:
            self._faults[operation] = _Fault(code=code, message=message, remaining=times)

    def call_count(self, operation: str) -> int:
        with self._lock:
            return self._calls.get(operation, 0)

    def universe_is_empty(self) -> bool:
        with self._lock:
            return not self._allocations

    def live_allocations(self) -> list[str]:
        """Kinds of allocations not yet released, oldest first."""
        with self._lock:
            return [kind for _, kind in sorted(self._allocations.items())]

    # -------------------------------------------------------------------------
    # Allocation Helpers
    # -------------------------------------------------------------------------

    def _now(self) -> int:
        return int(self._clock())

    def _apply_fault(self, operation: str) -> None:
        self._calls[operation] = self._calls.get(operation, 0) + 1
        fault = self._faults.get(operation)
        if fault is None:
            return
        fault.remaining -= 1
        if fault.remaining <= 0:
            del self._faults[operation]
        raise _Rejected(fault.code, fault.message)

    def _result(
        self,
        value: Any = None,
        error: Optional[RawError] = None,
        kind: str = "result",
        on_release: Optional[Callable[[], None]] = None,
    ) -> BoundaryResult:
        slot = next(self._ids)
        self._allocations[slot] = kind

        def release() -> None:
            with self._lock:
                if self._allocations.pop(slot, None) is None:
                    raise RuntimeError(f"double free of {kind} allocation {slot}")
                if on_release is not None:
                    on_release()

        return BoundaryResult(value=value, error=error, release=release)

    def _handle_result(
        self,
        table: dict[int, Any],
        record: Any,
        handle_type: type,
        kind: str,
    ) -> BoundaryResult:
        handle_id = next(self._ids)
        table[handle_id] = record
        return self._result(
            value=handle_type(handle_id),
            kind=kind,
            on_release=lambda: table.pop(handle_id, None),
        )

    @staticmethod
    def _lookup(table: dict[int, Any], handle: Any, kind: str) -> Any:
        record = table.get(getattr(handle, "value", 0))
        if record is None:
            raise _Rejected(C.UPLINK_ERROR_INVALID_HANDLE, f"invalid handle: {kind}")
        return record

    # -------------------------------------------------------------------------
    # Authorization
    # -------------------------------------------------------------------------

    def _root_grant(self, api_key: str, passphrase: str) -> _Grant:
        grant_id = uuid.uuid4().hex
        return _Grant(
            grant_id=grant_id,
            satellite_address=self.satellite_address,
            api_key=api_key,
            passphrase=passphrase,
            lineage=(grant_id,),
        )

    def _session(self, project: ProjectHandle) -> _Session:
        session = self._lookup(self._projects, project, "project")
        if session.closed:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "project: already closed")
        return session

    def _authorize(
        self,
        grant: _Grant,
        capability: str,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        if grant.api_key not in self._api_keys:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "metaclient: invalid API key")
        if any(ancestor in self._revoked for ancestor in grant.lineage):
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "metaclient: permission denied: access revoked")

        now = self._now()
        not_before = to_unix(grant.permission.not_before)
        not_after = to_unix(grant.permission.not_after)
        if not_before and now < not_before:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "metaclient: permission denied: access not yet valid")
        if not_after and now > not_after:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "metaclient: permission denied: access expired")

        if capability != "any" and not getattr(grant.permission, f"allow_{capability}"):
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, f"metaclient: permission denied: {capability} not allowed")

        if bucket is not None and not grant.allows_key(bucket, key):
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "metaclient: permission denied: path not allowed")

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    @staticmethod
    def _check_bucket_name(name: str) -> None:
        if not name:
            raise _Rejected(C.UPLINK_ERROR_BUCKET_NAME_INVALID, "bucket name invalid: empty")
        if not C.BUCKET_NAME_MIN_LENGTH <= len(name) <= C.BUCKET_NAME_MAX_LENGTH:
            raise _Rejected(C.UPLINK_ERROR_BUCKET_NAME_INVALID, f"bucket name invalid: {name!r}")
        if not _BUCKET_NAME_PATTERN.match(name) or ".." in name:
            raise _Rejected(C.UPLINK_ERROR_BUCKET_NAME_INVALID, f"bucket name invalid: {name!r}")

    @staticmethod
    def _check_key(key: str) -> None:
        if not key:
            raise _Rejected(C.UPLINK_ERROR_OBJECT_KEY_INVALID, "object key invalid: empty")

    def _bucket(self, name: str) -> _BucketRecord:
        self._check_bucket_name(name)
        record = self._buckets.get(name)
        if record is None:
            raise _Rejected(C.UPLINK_ERROR_BUCKET_NOT_FOUND, f"bucket not found ({name})")
        return record

    def _object(self, bucket: str, key: str) -> _StoredObject:
        self._check_key(key)
        record = self._buckets.get(bucket)
        obj = record.objects.get(key) if record is not None else None
        if obj is None or self._expired(obj):
            raise _Rejected(C.UPLINK_ERROR_OBJECT_NOT_FOUND, f"object not found ({key})")
        return obj

    def _expired(self, obj: _StoredObject) -> bool:
        return bool(obj.expires) and self._now() >= obj.expires

    def _pending_upload(self, bucket: str, key: str, upload_id: str) -> _PendingUpload:
        pending = self._pending.get(upload_id)
        if pending is None or pending.bucket != bucket or pending.key != key:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, f"metaclient: unknown upload id {upload_id!r}")
        return pending

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    @_boundary_call
    def parse_access(self, serialized: str) -> BoundaryResult[AccessHandle]:
        if not serialized:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "access grant: empty")
        try:
            grant = _Grant.parse(serialized)
        except (ValueError, KeyError, TypeError, binascii.Error, UnicodeError) as e:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, f"access grant: invalid format: {e}") from e
        return self._handle_result(self._accesses, grant, AccessHandle, "access")

    @_boundary_call
    def request_access_with_passphrase(
        self,
        satellite_address: str,
        api_key: str,
        passphrase: str,
        config: Optional[UplinkConfig] = None,
    ) -> BoundaryResult[AccessHandle]:
        if satellite_address != self.satellite_address:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, f"rpc: dial {satellite_address}: connection refused")
        if api_key not in self._api_keys:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "metaclient: invalid API key")
        if not passphrase:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "passphrase must not be empty")
        grant = self._root_grant(api_key, passphrase)
        return self._handle_result(self._accesses, grant, AccessHandle, "access")

    @_boundary_call
    def access_share(
        self,
        access: AccessHandle,
        permission: Permission,
        prefixes: Sequence[SharePrefix],
    ) -> BoundaryResult[AccessHandle]:
        parent = self._lookup(self._accesses, access, "access")
        if permission.is_empty:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "share: permission is empty")

        granted = parent.permission
        narrowed = Permission(
            allow_download=permission.allow_download and granted.allow_download,
            allow_upload=permission.allow_upload and granted.allow_upload,
            allow_list=permission.allow_list and granted.allow_list,
            allow_delete=permission.allow_delete and granted.allow_delete,
            not_before=max(to_unix(permission.not_before), to_unix(granted.not_before)) or None,
            not_after=_earliest(to_unix(permission.not_after), to_unix(granted.not_after)) or None,
        )

        restrictions = tuple(prefixes)
        for restriction in restrictions:
            if not parent.allows_key(restriction.bucket, restriction.prefix or None):
                raise _Rejected(
                    C.UPLINK_ERROR_INTERNAL,
                    f"share: prefix {restriction.bucket}/{restriction.prefix or ''} not allowed by parent",
                )
        if not restrictions:
            restrictions = parent.prefixes

        child_id = uuid.uuid4().hex
        child = _Grant(
            grant_id=child_id,
            satellite_address=parent.satellite_address,
            api_key=parent.api_key,
            passphrase=parent.passphrase,
            permission=narrowed,
            prefixes=restrictions,
            lineage=parent.lineage + (child_id,),
        )
        return self._handle_result(self._accesses, child, AccessHandle, "access")

    @_boundary_call
    def access_serialize(self, access: AccessHandle) -> BoundaryResult[str]:
        grant = self._lookup(self._accesses, access, "access")
        return self._result(value=grant.serialize(), kind="string")

    @_boundary_call
    def access_satellite_address(self, access: AccessHandle) -> BoundaryResult[str]:
        grant = self._lookup(self._accesses, access, "access")
        return self._result(value=grant.satellite_address, kind="string")

    @_boundary_call
    def access_override_encryption_key(
        self,
        access: AccessHandle,
        bucket: str,
        prefix: str,
        key: EncryptionKeyHandle,
    ) -> BoundaryResult[None]:
        grant = self._lookup(self._accesses, access, "access")
        material = self._lookup(self._keys, key, "encryption key")
        if not bucket:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "override encryption key: bucket is required")
        grant.overrides[(bucket, prefix)] = material
        return self._result(kind="error")

    @_boundary_call
    def derive_encryption_key(
        self,
        passphrase: str,
        salt: bytes,
    ) -> BoundaryResult[EncryptionKeyHandle]:
        if not passphrase:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "passphrase must not be empty")
        material = hashlib.sha256(passphrase.encode("utf-8") + bytes(salt)).digest()
        return self._handle_result(self._keys, material, EncryptionKeyHandle, "encryption_key")

    # -------------------------------------------------------------------------
    # Project
    # -------------------------------------------------------------------------

    @_boundary_call
    def open_project(
        self,
        access: AccessHandle,
        config: Optional[UplinkConfig] = None,
    ) -> BoundaryResult[ProjectHandle]:
        grant = self._lookup(self._accesses, access, "access")
        if grant.satellite_address != self.satellite_address:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, f"rpc: dial {grant.satellite_address}: connection refused")
        session = _Session(grant=grant, config=config)
        return self._handle_result(self._projects, session, ProjectHandle, "project")

    @_boundary_call
    def close_project(self, project: ProjectHandle) -> BoundaryResult[None]:
        session = self._session(project)
        session.closed = True
        return self._result(kind="error")

    @_boundary_call
    def revoke_access(
        self,
        project: ProjectHandle,
        access: AccessHandle,
    ) -> BoundaryResult[None]:
        session = self._session(project)
        target = self._lookup(self._accesses, access, "access")
        self._authorize(session.grant, "any")
        if session.grant.grant_id not in target.lineage:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "metaclient: revoker is not an ancestor of the access")
        self._revoked.add(target.grant_id)
        return self._result(kind="error")

    # -------------------------------------------------------------------------
    # Buckets
    # -------------------------------------------------------------------------

    @_boundary_call
    def stat_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        session = self._session(project)
        self._authorize(session.grant, "any", bucket)
        record = self._bucket(bucket)
        return self._result(value=Bucket(record.name, record.created), kind="bucket")

    @_boundary_call
    def create_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        session = self._session(project)
        self._check_bucket_name(bucket)
        self._authorize(session.grant, "upload", bucket)
        if bucket in self._buckets:
            raise _Rejected(C.UPLINK_ERROR_BUCKET_ALREADY_EXISTS, f"bucket already exists ({bucket})")
        record = _BucketRecord(name=bucket, created=self._now())
        self._buckets[bucket] = record
        return self._result(value=Bucket(record.name, record.created), kind="bucket")

    @_boundary_call
    def ensure_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        session = self._session(project)
        self._check_bucket_name(bucket)
        self._authorize(session.grant, "upload", bucket)
        record = self._buckets.get(bucket)
        if record is None:
            record = _BucketRecord(name=bucket, created=self._now())
            self._buckets[bucket] = record
        return self._result(value=Bucket(record.name, record.created), kind="bucket")

    @_boundary_call
    def delete_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        session = self._session(project)
        self._authorize(session.grant, "delete", bucket)
        record = self._bucket(bucket)
        if any(not self._expired(obj) for obj in record.objects.values()):
            raise _Rejected(C.UPLINK_ERROR_BUCKET_NOT_EMPTY, f"bucket not empty ({bucket})")
        del self._buckets[bucket]
        return self._result(value=Bucket(record.name, record.created), kind="bucket")

    @_boundary_call
    def delete_bucket_with_objects(
        self,
        project: ProjectHandle,
        bucket: str,
    ) -> BoundaryResult[Bucket]:
        session = self._session(project)
        self._authorize(session.grant, "delete", bucket)
        record = self._bucket(bucket)
        del self._buckets[bucket]
        for upload_id in [u for u, p in self._pending.items() if p.bucket == bucket]:
            del self._pending[upload_id]
        return self._result(value=Bucket(record.name, record.created), kind="bucket")

    @_boundary_call
    def list_buckets(
        self,
        project: ProjectHandle,
        options: Optional[ListBucketsOptions] = None,
    ) -> BoundaryResult[BucketIteratorHandle]:
        options = options or ListBucketsOptions()
        cursor = _Cursor(items=[])
        try:
            session = self._session(project)
            self._authorize(session.grant, "list")
            cursor.items = [
                Bucket(record.name, record.created)
                for name, record in sorted(self._buckets.items())
                if (not options.cursor or name > options.cursor)
                and session.grant.allows_key(name, None)
            ]
        except _Rejected as rejected:
            cursor.error = RawError(rejected.code, rejected.message)
        return self._handle_result(self._iterators, cursor, BucketIteratorHandle, "bucket_iterator")

    # -------------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------------

    @_boundary_call
    def stat_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
    ) -> BoundaryResult[Object]:
        session = self._session(project)
        self._authorize(session.grant, "download", bucket, key)
        obj = self._object(bucket, key)
        return self._result(value=obj.describe(), kind="object")

    @_boundary_call
    def delete_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
    ) -> BoundaryResult[Object]:
        session = self._session(project)
        self._check_key(key)
        self._authorize(session.grant, "delete", bucket, key)
        record = self._buckets.get(bucket)
        obj = record.objects.pop(key, None) if record is not None else None
        if obj is None or self._expired(obj):
            return self._result(kind="object")
        return self._result(value=obj.describe(), kind="object")

    @_boundary_call
    def update_object_metadata(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        custom: Mapping[str, str],
    ) -> BoundaryResult[None]:
        session = self._session(project)
        self._authorize(session.grant, "upload", bucket, key)
        self._bucket(bucket)
        obj = self._object(bucket, key)
        obj.custom = dict(custom)
        return self._result(kind="error")

    def _relocate(
        self,
        session: _Session,
        bucket: str,
        key: str,
        new_bucket: str,
        new_key: str,
    ) -> _StoredObject:
        self._authorize(session.grant, "download", bucket, key)
        self._authorize(session.grant, "upload", new_bucket, new_key)
        self._bucket(bucket)
        source = self._object(bucket, key)
        self._check_key(new_key)
        target = self._bucket(new_bucket)
        copied = _StoredObject(
            key=new_key,
            data=source.data,
            created=self._now(),
            expires=source.expires,
            custom=dict(source.custom),
        )
        target.objects[new_key] = copied
        return copied

    @_boundary_call
    def copy_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        new_bucket: str,
        new_key: str,
    ) -> BoundaryResult[Object]:
        session = self._session(project)
        copied = self._relocate(session, bucket, key, new_bucket, new_key)
        return self._result(value=copied.describe(), kind="object")

    @_boundary_call
    def move_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        new_bucket: str,
        new_key: str,
    ) -> BoundaryResult[None]:
        session = self._session(project)
        self._authorize(session.grant, "delete", bucket, key)
        moved = self._relocate(session, bucket, key, new_bucket, new_key)
        if (bucket, key) != (new_bucket, new_key):
            self._buckets[bucket].objects.pop(key, None)
        moved.created = self._now()
        return self._result(kind="error")

    @_boundary_call
    def list_objects(
        self,
        project: ProjectHandle,
        bucket: str,
        options: Optional[ListObjectsOptions] = None,
    ) -> BoundaryResult[ObjectIteratorHandle]:
        options = options or ListObjectsOptions()
        cursor = _Cursor(items=[])
        try:
            session = self._session(project)
            self._authorize(session.grant, "list", bucket)
            record = self._bucket(bucket)
            visible = [
                obj for key, obj in record.objects.items()
                if not self._expired(obj) and session.grant.allows_key(bucket, key)
            ]
            cursor.items = _list_entries(
                visible,
                options.prefix,
                options.cursor,
                options.recursive,
                lambda obj: obj.describe(options.system, options.custom),
                lambda prefix: Object(key=prefix, is_prefix=True),
            )
        except _Rejected as rejected:
            cursor.error = RawError(rejected.code, rejected.message)
        return self._handle_result(self._iterators, cursor, ObjectIteratorHandle, "object_iterator")

    # -------------------------------------------------------------------------
    # Single Upload
    # -------------------------------------------------------------------------

    @_boundary_call
    def upload_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        options: Optional[UploadOptions] = None,
    ) -> BoundaryResult[UploadHandle]:
        session = self._session(project)
        self._check_bucket_name(bucket)
        self._check_key(key)
        self._authorize(session.grant, "upload", bucket, key)
        self._bucket(bucket)
        stream = _WriteStream(
            session=session,
            bucket=bucket,
            key=key,
            expires=to_unix(options.expires) if options else 0,
        )
        return self._handle_result(self._uploads, stream, UploadHandle, "upload")

    def _write(self, stream: _WriteStream, data: bytes) -> BoundaryResult[int]:
        if stream.state != "open":
            raise _Rejected(C.UPLINK_ERROR_UPLOAD_DONE, f"upload: already {stream.state}")
        accepted = len(data)
        if self.write_limit is not None:
            accepted = min(accepted, self.write_limit)
        stream.buffer.extend(data[:accepted])
        return self._result(value=accepted, kind="write_result")

    def _finish(self, stream: _WriteStream, state: str) -> None:
        if stream.state != "open":
            raise _Rejected(C.UPLINK_ERROR_UPLOAD_DONE, f"upload: already {stream.state}")
        stream.state = state

    @_boundary_call
    def upload_write(self, upload: UploadHandle, data: bytes) -> BoundaryResult[int]:
        return self._write(self._lookup(self._uploads, upload, "upload"), data)

    @_boundary_call
    def upload_commit(self, upload: UploadHandle) -> BoundaryResult[None]:
        stream = self._lookup(self._uploads, upload, "upload")
        if stream.state == "open":
            self._authorize(stream.session.grant, "upload", stream.bucket, stream.key)
            record = self._bucket(stream.bucket)
            stream.created = self._now()
            record.objects[stream.key] = _StoredObject(
                key=stream.key,
                data=bytes(stream.buffer),
                created=stream.created,
                expires=stream.expires,
                custom=dict(stream.custom),
            )
        self._finish(stream, "committed")
        return self._result(kind="error")

    @_boundary_call
    def upload_abort(self, upload: UploadHandle) -> BoundaryResult[None]:
        self._finish(self._lookup(self._uploads, upload, "upload"), "aborted")
        return self._result(kind="error")

    @_boundary_call
    def upload_set_custom_metadata(
        self,
        upload: UploadHandle,
        custom: Mapping[str, str],
    ) -> BoundaryResult[None]:
        stream = self._lookup(self._uploads, upload, "upload")
        if stream.state != "open":
            raise _Rejected(C.UPLINK_ERROR_UPLOAD_DONE, f"upload: already {stream.state}")
        stream.custom = dict(custom)
        return self._result(kind="error")

    @_boundary_call
    def upload_info(self, upload: UploadHandle) -> BoundaryResult[Object]:
        stream = self._lookup(self._uploads, upload, "upload")
        obj = Object(
            key=stream.key,
            system=SystemMetadata(stream.created, stream.expires, len(stream.buffer)),
            custom=dict(sorted(stream.custom.items())),
        )
        return self._result(value=obj, kind="object")

    # -------------------------------------------------------------------------
    # Download
    # -------------------------------------------------------------------------

    @_boundary_call
    def download_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        options: Optional[DownloadOptions] = None,
    ) -> BoundaryResult[DownloadHandle]:
        session = self._session(project)
        self._authorize(session.grant, "download", bucket, key)
        obj = self._object(bucket, key)
        options = options or DownloadOptions()
        size = len(obj.data)
        if options.offset < 0 or options.offset > size:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, f"download: offset {options.offset} out of range")
        end = size if options.length < 0 else min(size, options.offset + options.length)
        stream = _ReadStream(obj=obj, data=obj.data[options.offset:end])
        return self._handle_result(self._downloads, stream, DownloadHandle, "download")

    @_boundary_call
    def download_read(self, download: DownloadHandle, length: int) -> BoundaryResult[bytes]:
        stream = self._lookup(self._downloads, download, "download")
        if stream.closed:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "download: already closed")
        remaining = len(stream.data) - stream.position
        if remaining == 0 and length > 0:
            return self._result(value=b"", error=RawError(C.EOF, "EOF"), kind="read_result")
        count = min(length, remaining)
        if self.read_limit is not None:
            count = min(count, self.read_limit)
        chunk = stream.data[stream.position:stream.position + count]
        stream.position += count
        if self.eof_with_data and count and stream.position == len(stream.data):
            return self._result(value=chunk, error=RawError(C.EOF, "EOF"), kind="read_result")
        return self._result(value=chunk, kind="read_result")

    @_boundary_call
    def download_info(self, download: DownloadHandle) -> BoundaryResult[Object]:
        stream = self._lookup(self._downloads, download, "download")
        return self._result(value=stream.obj.describe(), kind="object")

    @_boundary_call
    def close_download(self, download: DownloadHandle) -> BoundaryResult[None]:
        stream = self._lookup(self._downloads, download, "download")
        if stream.closed:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, "download: already closed")
        stream.closed = True
        return self._result(kind="error")

    # -------------------------------------------------------------------------
    # Multipart
    # -------------------------------------------------------------------------

    @_boundary_call
    def begin_upload(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        options: Optional[UploadOptions] = None,
    ) -> BoundaryResult[UploadInfo]:
        session = self._session(project)
        self._check_bucket_name(bucket)
        self._check_key(key)
        self._authorize(session.grant, "upload", bucket, key)
        self._bucket(bucket)
        pending = _PendingUpload(
            upload_id=uuid.uuid4().hex,
            bucket=bucket,
            key=key,
            created=self._now(),
            expires=to_unix(options.expires) if options else 0,
        )
        self._pending[pending.upload_id] = pending
        return self._result(value=pending.describe(), kind="upload_info")

    @_boundary_call
    def commit_upload(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
        options: Optional[CommitUploadOptions] = None,
    ) -> BoundaryResult[Object]:
        session = self._session(project)
        self._authorize(session.grant, "upload", bucket, key)
        record = self._bucket(bucket)
        pending = self._pending_upload(bucket, key, upload_id)

        numbers = sorted(pending.parts)
        for number in numbers[:-1]:
            size = len(pending.parts[number].data)
            if size < C.MIN_PART_SIZE:
                raise _Rejected(
                    C.UPLINK_ERROR_INTERNAL,
                    f"metaclient: size of part number {number} is below minimum threshold, "
                    f"got: {size} B, min: {C.MIN_PART_SIZE} B",
                )

        custom = normalize_custom_metadata(options.custom_metadata) if options else {}
        obj = _StoredObject(
            key=key,
            data=b"".join(pending.parts[n].data for n in numbers),
            created=self._now(),
            expires=pending.expires,
            custom=custom,
        )
        record.objects[key] = obj
        del self._pending[upload_id]
        return self._result(value=obj.describe(), kind="object")

    @_boundary_call
    def abort_upload(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
    ) -> BoundaryResult[None]:
        session = self._session(project)
        self._authorize(session.grant, "delete", bucket, key)
        self._pending_upload(bucket, key, upload_id)
        del self._pending[upload_id]
        return self._result(kind="error")

    @_boundary_call
    def upload_part(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
    ) -> BoundaryResult[PartUploadHandle]:
        session = self._session(project)
        self._authorize(session.grant, "upload", bucket, key)
        self._pending_upload(bucket, key, upload_id)
        if part_number < C.FIRST_PART_NUMBER:
            raise _Rejected(C.UPLINK_ERROR_INTERNAL, f"part number {part_number} is invalid")
        stream = _WriteStream(
            session=session,
            bucket=bucket,
            key=key,
            upload_id=upload_id,
            part_number=part_number,
        )
        return self._handle_result(self._parts, stream, PartUploadHandle, "part_upload")

    @_boundary_call
    def part_upload_write(self, part: PartUploadHandle, data: bytes) -> BoundaryResult[int]:
        return self._write(self._lookup(self._parts, part, "part upload"), data)

    @_boundary_call
    def part_upload_commit(self, part: PartUploadHandle) -> BoundaryResult[None]:
        stream = self._lookup(self._parts, part, "part upload")
        if stream.state == "open":
            pending = self._pending_upload(stream.bucket, stream.key, stream.upload_id)
            stream.created = self._now()
            pending.parts[stream.part_number] = _PartRecord(
                part_number=stream.part_number,
                data=bytes(stream.buffer),
                modified=stream.created,
                etag=stream.etag,
            )
        self._finish(stream, "committed")
        return self._result(kind="error")

    @_boundary_call
    def part_upload_abort(self, part: PartUploadHandle) -> BoundaryResult[None]:
        self._finish(self._lookup(self._parts, part, "part upload"), "aborted")
        return self._result(kind="error")

    @_boundary_call
    def part_upload_set_etag(self, part: PartUploadHandle, etag: str) -> BoundaryResult[None]:
        stream = self._lookup(self._parts, part, "part upload")
        if stream.state != "open":
            raise _Rejected(C.UPLINK_ERROR_UPLOAD_DONE, f"upload: already {stream.state}")
        stream.etag = etag
        return self._result(kind="error")

    @_boundary_call
    def part_upload_info(self, part: PartUploadHandle) -> BoundaryResult[UploadPart]:
        stream = self._lookup(self._parts, part, "part upload")
        info = UploadPart(
            part_number=stream.part_number,
            size=len(stream.buffer),
            modified=stream.created,
            etag=stream.etag,
        )
        return self._result(value=info, kind="part")

    @_boundary_call
    def list_uploads(
        self,
        project: ProjectHandle,
        bucket: str,
        options: Optional[ListUploadsOptions] = None,
    ) -> BoundaryResult[UploadIteratorHandle]:
        options = options or ListUploadsOptions()
        cursor = _Cursor(items=[])
        try:
            session = self._session(project)
            self._authorize(session.grant, "list", bucket)
            self._bucket(bucket)
            visible = [
                pending for pending in self._pending.values()
                if pending.bucket == bucket and session.grant.allows_key(bucket, pending.key)
            ]
            cursor.items = _list_entries(
                visible,
                options.prefix,
                options.cursor,
                options.recursive,
                lambda pending: pending.describe(options.system, options.custom),
                lambda prefix: UploadInfo(upload_id="", key=prefix, is_prefix=True),
            )
        except _Rejected as rejected:
            cursor.error = RawError(rejected.code, rejected.message)
        return self._handle_result(self._iterators, cursor, UploadIteratorHandle, "upload_iterator")

    @_boundary_call
    def list_upload_parts(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
        options: Optional[ListUploadPartsOptions] = None,
    ) -> BoundaryResult[PartIteratorHandle]:
        options = options or ListUploadPartsOptions()
        cursor = _Cursor(items=[])
        try:
            session = self._session(project)
            self._authorize(session.grant, "list", bucket, key)
            pending = self._pending_upload(bucket, key, upload_id)
            cursor.items = [
                UploadPart(
                    part_number=part.part_number,
                    size=len(part.data),
                    modified=part.modified,
                    etag=part.etag,
                )
                for number, part in sorted(pending.parts.items())
                if number > options.cursor
            ]
        except _Rejected as rejected:
            cursor.error = RawError(rejected.code, rejected.message)
        return self._handle_result(self._iterators, cursor, PartIteratorHandle, "part_iterator")

    # -------------------------------------------------------------------------
    # Iterators
    # -------------------------------------------------------------------------

    def iterator_next(self, iterator: IteratorHandle) -> bool:
        with self._lock:
            cursor = self._iterators.get(iterator.value)
            if cursor is None or cursor.error is not None:
                return False
            if cursor.position + 1 >= len(cursor.items):
                cursor.position = len(cursor.items)
                return False
            cursor.position += 1
            return True

    @_boundary_call
    def iterator_item(self, iterator: IteratorHandle) -> BoundaryResult[object]:
        cursor = self._lookup(self._iterators, iterator, "iterator")
        return self._result(value=cursor.current(), kind="item")

    @_boundary_call
    def iterator_err(self, iterator: IteratorHandle) -> BoundaryResult[None]:
        cursor = self._iterators.get(iterator.value)
        if cursor is None:
            return self._result(
                error=RawError(C.UPLINK_ERROR_INVALID_HANDLE, "invalid handle: iterator"),
                kind="error",
            )
        if cursor.error is None:
            # A null error pointer allocates nothing natively.
            return BoundaryResult()
        return self._result(error=cursor.error, kind="error")

    # -------------------------------------------------------------------------
    # Edge
    # -------------------------------------------------------------------------

    @_boundary_call
    def edge_register_access(
        self,
        config: EdgeConfig,
        access: AccessHandle,
        options: Optional[EdgeRegisterAccessOptions] = None,
    ) -> BoundaryResult[EdgeCredentials]:
        if config.auth_service_address != self.edge_auth_address:
            raise _Rejected(
                C.EDGE_ERROR_AUTH_DIAL_FAILED,
                f"edge: dial {config.auth_service_address}: connection refused",
            )
        grant = self._lookup(self._accesses, access, "access")
        try:
            self._authorize(grant, "any")
        except _Rejected as rejected:
            raise _Rejected(C.EDGE_ERROR_REGISTER_ACCESS_FAILED, f"edge: {rejected.message}") from rejected
        digest = hashlib.sha256(grant.grant_id.encode("ascii")).hexdigest()
        credentials = EdgeCredentials(
            access_key_id=digest[:28],
            secret_key=digest[28:],
            endpoint=self.edge_endpoint,
        )
        return self._result(value=credentials, kind="credentials")

    @_boundary_call
    def edge_join_share_url(
        self,
        base_url: str,
        access_key_id: str,
        bucket: str,
        key: str,
        options: Optional[ShareURLOptions] = None,
    ) -> BoundaryResult[str]:
        return self._result(
            value=join_share_url(base_url, access_key_id, bucket, key, options),
            kind="string",
        )


# =============================================================================
# HELPERS
# =============================================================================
def _earliest(a: int, b: int) -> int:
    """Earliest non-zero bound (0 means unbounded)."""
    if not a:
        return b
    if not b:
        return a
    return min(a, b)


def _list_entries(
    records: Sequence[Any],
    prefix: Optional[str],
    cursor: Optional[str],
    recursive: bool,
    describe: Callable[[Any], Any],
    make_prefix: Callable[[str], Any],
) -> list[Any]:
    """
    Directory-style listing over records with a `key` attribute.

    Non-recursive listings collapse everything below the next delimiter
    into one prefix entry. The cursor is exclusive.
    """
    prefix = prefix or ""
    entries: dict[str, Any] = {}
    for record in sorted(records, key=lambda r: r.key):
        if not record.key.startswith(prefix):
            continue
        if not recursive:
            rest = record.key[len(prefix):]
            cut = rest.find(C.PREFIX_DELIMITER)
            if cut >= 0:
                grouped = prefix + rest[:cut + 1]
                entries.setdefault(grouped, None)
                continue
        entries.setdefault(record.key, record)

    listed = []
    for key in sorted(entries):
        if cursor and key <= cursor:
            continue
        record = entries[key]
        listed.append(make_prefix(key) if record is None else describe(record))
    return listed


def join_share_url(
    base_url: str,
    access_key_id: str,
    bucket: str,
    key: str,
    options: Optional[ShareURLOptions] = None,
) -> str:
    """
    Linkshare URL for an object, bucket or whole access.

    raw=True links straight to the content; otherwise to the landing page.

    Raises:
        _Rejected: On a missing base URL or access key id, or a key without bucket
    """
    if not base_url:
        raise _Rejected(C.UPLINK_ERROR_INTERNAL, "share url: base url is required")
    if not access_key_id:
        raise _Rejected(C.UPLINK_ERROR_INTERNAL, "share url: access key id is required")
    if key and not bucket:
        raise _Rejected(C.UPLINK_ERROR_INTERNAL, "share url: bucket is required if key is specified")

    raw = options is not None and options.raw
    if raw and not key:
        raise _Rejected(C.UPLINK_ERROR_INTERNAL, "share url: key is required for a raw url")

    mode = "raw" if raw else "s"
    url = f"{base_url.rstrip('/')}/{mode}/{quote(access_key_id, safe='')}"
    if bucket:
        url += f"/{quote(bucket, safe='')}"
        if key:
            url += f"/{quote(key, safe='/')}"
        else:
            url += "/"
    return url
