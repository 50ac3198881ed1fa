"""
Native Boundary: ctypes Calls into libuplink

Implements the Boundary protocol on top of uplink-c. Each method marshals
its arguments into the C structs from uplink.boundary.abi, performs one
call, decodes whatever it needs from the returned struct, and hands back a
BoundaryResult whose release runs the matching uplink_free_* function.

Handles travel as integer addresses of the C handle structs; they are
passed back to the library as void pointers and never dereferenced here.
"""

from __future__ import annotations

import ctypes
import logging
from ctypes import POINTER, byref, c_void_p
from typing import Any, Callable, Mapping, Optional, Sequence

from uplink.boundary import abi
from uplink.boundary.protocol import BoundaryResult, RawError
from uplink.core.config import LibraryConfig, UplinkConfig
from uplink.core.types import (
    AccessHandle,
    BucketIteratorHandle,
    DownloadHandle,
    EncryptionKeyHandle,
    Handle,
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

logger = logging.getLogger(__name__)


# =============================================================================
# MARSHALLING HELPERS
# =============================================================================
def _enc(value: Optional[str]) -> Optional[bytes]:
    return None if value is None else value.encode("utf-8")


def _dec(value: Optional[bytes]) -> str:
    return "" if not value else value.decode("utf-8", "replace")


def _address(pointer: Any) -> int:
    return ctypes.cast(pointer, c_void_p).value or 0


def _raw_error(pointer: Any) -> Optional[RawError]:
    if not pointer:
        return None
    error = pointer.contents
    return RawError(code=int(error.code), message=_dec(error.message))


def _uplink_config(config: Optional[UplinkConfig]) -> abi.UplinkConfig:
    config = config or UplinkConfig()
    return abi.UplinkConfig(
        user_agent=_enc(config.user_agent),
        dial_timeout_milliseconds=config.dial_timeout_milliseconds,
        temp_directory=_enc(config.temp_directory),
    )


def _custom_metadata(custom: Mapping[str, str]) -> tuple[abi.UplinkCustomMetadata, list[Any]]:
    """
    Marshal custom metadata into an entry array.

    Returns the struct plus the buffers that must stay referenced for the
    duration of the call.
    """
    items = list(normalize_custom_metadata(custom).items())
    if not items:
        return abi.UplinkCustomMetadata(None, 0), []

    entries = (abi.UplinkCustomMetadataEntry * len(items))()
    keep: list[Any] = [entries]
    for index, (key, value) in enumerate(items):
        key_bytes = key.encode("utf-8")
        value_bytes = value.encode("utf-8")
        key_buffer = ctypes.create_string_buffer(key_bytes, max(len(key_bytes), 1))
        value_buffer = ctypes.create_string_buffer(value_bytes, max(len(value_bytes), 1))
        keep.extend((key_buffer, value_buffer))
        entries[index].key = ctypes.addressof(key_buffer)
        entries[index].key_length = len(key_bytes)
        entries[index].value = ctypes.addressof(value_buffer)
        entries[index].value_length = len(value_bytes)

    metadata = abi.UplinkCustomMetadata(
        ctypes.cast(entries, POINTER(abi.UplinkCustomMetadataEntry)),
        len(items),
    )
    return metadata, keep


def _decode_custom(custom: abi.UplinkCustomMetadata) -> dict[str, str]:
    decoded: dict[str, str] = {}
    for index in range(custom.count):
        entry = custom.entries[index]
        key = ctypes.string_at(entry.key, entry.key_length).decode("utf-8", "replace")
        value = ctypes.string_at(entry.value, entry.value_length).decode("utf-8", "replace")
        decoded[key] = value
    return dict(sorted(decoded.items()))


def _decode_system(system: abi.UplinkSystemMetadata) -> SystemMetadata:
    return SystemMetadata(
        created=int(system.created),
        expires=int(system.expires),
        content_length=int(system.content_length),
    )


def _decode_object(pointer: Any) -> Optional[Object]:
    if not pointer:
        return None
    obj = pointer.contents
    return Object(
        key=_dec(obj.key),
        is_prefix=bool(obj.is_prefix),
        system=_decode_system(obj.system),
        custom=_decode_custom(obj.custom),
    )


def _decode_bucket(pointer: Any) -> Optional[Bucket]:
    if not pointer:
        return None
    bucket = pointer.contents
    return Bucket(name=_dec(bucket.name), created=int(bucket.created))


def _decode_upload_info(pointer: Any) -> Optional[UploadInfo]:
    if not pointer:
        return None
    info = pointer.contents
    return UploadInfo(
        upload_id=_dec(info.upload_id),
        key=_dec(info.key),
        is_prefix=bool(info.is_prefix),
        system=_decode_system(info.system),
        custom=_decode_custom(info.custom),
    )


def _decode_part(pointer: Any) -> Optional[UploadPart]:
    if not pointer:
        return None
    part = pointer.contents
    etag = ctypes.string_at(part.etag, part.etag_length) if part.etag else b""
    return UploadPart(
        part_number=int(part.part_number),
        size=int(part.size),
        modified=int(part.modified),
        etag=etag.decode("utf-8", "replace"),
    )


def _decode_string(pointer: Any) -> Optional[str]:
    if not pointer:
        return None
    return ctypes.string_at(pointer).decode("utf-8", "replace")


def _list_options(options: Any, struct_type: type) -> Any:
    if options is None:
        return None
    return byref(struct_type(
        prefix=_enc(options.prefix),
        cursor=_enc(options.cursor),
        recursive=options.recursive,
        system=options.system,
        custom=options.custom,
    ))


# =============================================================================
# ITERATOR DISPATCH
# =============================================================================
_ITERATOR_KINDS: dict[type, tuple[str, str, Callable[[Any], Any]]] = {
    BucketIteratorHandle: ("bucket", "uplink_free_bucket", _decode_bucket),
    ObjectIteratorHandle: ("object", "uplink_free_object", _decode_object),
    UploadIteratorHandle: ("upload", "uplink_free_upload_info", _decode_upload_info),
    PartIteratorHandle: ("part", "uplink_free_part", _decode_part),
}


# =============================================================================
# NATIVE BOUNDARY
# =============================================================================
class NativeBoundary:
    """
    Boundary backed by the precompiled uplink-c shared library.

    Example:
        boundary = NativeBoundary.from_config(LibraryConfig.from_env().unwrap())
        uplink.set_boundary(boundary)
    """

    __slots__ = ("_lib", "_path")

    def __init__(
        self,
        library_path: Optional[str] = None,
        library: Optional[ctypes.CDLL] = None,
    ) -> None:
        self._path = library_path or LibraryConfig().library_path
        self._lib = library if library is not None else abi.load_library(self._path)
        logger.debug("Loaded native uplink library from %s", self._path)

    @classmethod
    def from_config(cls, config: LibraryConfig) -> NativeBoundary:
        """
        Raises:
            ValueError: If the configuration does not validate
            OSError: If the library cannot be loaded
        """
        validated = config.validate()
        if validated.is_err():
            raise ValueError(validated.error)
        return cls(library_path=config.library_path)

    # -------------------------------------------------------------------------
    # Call Shapes
    # -------------------------------------------------------------------------

    def _value_call(
        self,
        name: str,
        free_name: str,
        decode: Callable[[Any], Any],
        *args: Any,
    ) -> BoundaryResult:
        """Call returning {value, error} by value; freed with `free_name`."""
        result = getattr(self._lib, name)(*args)
        error = _raw_error(result.error)
        value = decode(result) if error is None else None
        free = getattr(self._lib, free_name)
        return BoundaryResult(value=value, error=error, release=lambda: free(result))

    def _error_call(self, name: str, *args: Any) -> BoundaryResult[None]:
        """Call returning a bare UplinkError pointer."""
        pointer = getattr(self._lib, name)(*args)
        error = _raw_error(pointer)
        if error is None:
            return BoundaryResult()
        return BoundaryResult(error=error, release=lambda: self._lib.uplink_free_error(pointer))

    def _handle_call(
        self,
        name: str,
        free_name: str,
        field: str,
        handle_type: type[Handle],
        *args: Any,
    ) -> BoundaryResult:
        return self._value_call(
            name,
            free_name,
            lambda result: handle_type(_address(getattr(result, field))),
            *args,
        )

    def _iterator(self, pointer: Any, handle_type: type[IteratorHandle]) -> BoundaryResult:
        address = _address(pointer)
        kind, _, _ = _ITERATOR_KINDS[handle_type]
        free = getattr(self._lib, f"uplink_free_{kind}_iterator")
        if not address:
            return BoundaryResult()
        return BoundaryResult(value=handle_type(address), release=lambda: free(address))

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def parse_access(self, serialized: str) -> BoundaryResult[AccessHandle]:
        return self._handle_call(
            "uplink_parse_access", "uplink_free_access_result", "access",
            AccessHandle, _enc(serialized),
        )

    def request_access_with_passphrase(
        self,
        satellite_address: str,
        api_key: str,
        passphrase: str,
        config: Optional[UplinkConfig] = None,
    ) -> BoundaryResult[AccessHandle]:
        args = (_enc(satellite_address), _enc(api_key), _enc(passphrase))
        if config is None:
            return self._handle_call(
                "uplink_request_access_with_passphrase", "uplink_free_access_result",
                "access", AccessHandle, *args,
            )
        return self._handle_call(
            "uplink_config_request_access_with_passphrase", "uplink_free_access_result",
            "access", AccessHandle, _uplink_config(config), *args,
        )

    def access_share(
        self,
        access: AccessHandle,
        permission: Permission,
        prefixes: Sequence[SharePrefix],
    ) -> BoundaryResult[AccessHandle]:
        c_permission = abi.UplinkPermission(
            allow_download=permission.allow_download,
            allow_upload=permission.allow_upload,
            allow_list=permission.allow_list,
            allow_delete=permission.allow_delete,
            not_before=to_unix(permission.not_before),
            not_after=to_unix(permission.not_after),
        )
        c_prefixes = None
        if prefixes:
            c_prefixes = (abi.UplinkSharePrefix * len(prefixes))(*[
                abi.UplinkSharePrefix(_enc(p.bucket), _enc(p.prefix or ""))
                for p in prefixes
            ])
        return self._handle_call(
            "uplink_access_share", "uplink_free_access_result", "access",
            AccessHandle, access.value, c_permission, c_prefixes, len(prefixes),
        )

    def access_serialize(self, access: AccessHandle) -> BoundaryResult[str]:
        return self._value_call(
            "uplink_access_serialize", "uplink_free_string_result",
            lambda r: _decode_string(r.string), access.value,
        )

    def access_satellite_address(self, access: AccessHandle) -> BoundaryResult[str]:
        return self._value_call(
            "uplink_access_satellite_address", "uplink_free_string_result",
            lambda r: _decode_string(r.string), access.value,
        )

    def access_override_encryption_key(
        self,
        access: AccessHandle,
        bucket: str,
        prefix: str,
        key: EncryptionKeyHandle,
    ) -> BoundaryResult[None]:
        return self._error_call(
            "uplink_access_override_encryption_key",
            access.value, _enc(bucket), _enc(prefix), key.value,
        )

    def derive_encryption_key(
        self,
        passphrase: str,
        salt: bytes,
    ) -> BoundaryResult[EncryptionKeyHandle]:
        salt_buffer = ctypes.create_string_buffer(salt, max(len(salt), 1))
        return self._handle_call(
            "uplink_derive_encryption_key", "uplink_free_encryption_key_result",
            "encryption_key", EncryptionKeyHandle,
            _enc(passphrase), salt_buffer, len(salt),
        )

    # -------------------------------------------------------------------------
    # Project
    # -------------------------------------------------------------------------

    def open_project(
        self,
        access: AccessHandle,
        config: Optional[UplinkConfig] = None,
    ) -> BoundaryResult[ProjectHandle]:
        if config is None:
            return self._handle_call(
                "uplink_open_project", "uplink_free_project_result", "project",
                ProjectHandle, access.value,
            )
        return self._handle_call(
            "uplink_config_open_project", "uplink_free_project_result", "project",
            ProjectHandle, _uplink_config(config), access.value,
        )

    def close_project(self, project: ProjectHandle) -> BoundaryResult[None]:
        return self._error_call("uplink_close_project", project.value)

    def revoke_access(self, project: ProjectHandle, access: AccessHandle) -> BoundaryResult[None]:
        return self._error_call("uplink_revoke_access", project.value, access.value)

    # -------------------------------------------------------------------------
    # Buckets
    # -------------------------------------------------------------------------

    def _bucket_call(self, name: str, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        return self._value_call(
            name, "uplink_free_bucket_result",
            lambda r: _decode_bucket(r.bucket), project.value, _enc(bucket),
        )

    def stat_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        return self._bucket_call("uplink_stat_bucket", project, bucket)

    def create_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        return self._bucket_call("uplink_create_bucket", project, bucket)

    def ensure_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        return self._bucket_call("uplink_ensure_bucket", project, bucket)

    def delete_bucket(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        return self._bucket_call("uplink_delete_bucket", project, bucket)

    def delete_bucket_with_objects(self, project: ProjectHandle, bucket: str) -> BoundaryResult[Bucket]:
        return self._bucket_call("uplink_delete_bucket_with_objects", project, bucket)

    def list_buckets(
        self,
        project: ProjectHandle,
        options: Optional[ListBucketsOptions] = None,
    ) -> BoundaryResult[BucketIteratorHandle]:
        c_options = None
        if options is not None:
            c_options = byref(abi.UplinkListBucketsOptions(cursor=_enc(options.cursor)))
        pointer = self._lib.uplink_list_buckets(project.value, c_options)
        return self._iterator(pointer, BucketIteratorHandle)

    # -------------------------------------------------------------------------
    # Objects
    # -------------------------------------------------------------------------

    def _object_call(self, name: str, *args: Any) -> BoundaryResult[Object]:
        return self._value_call(
            name, "uplink_free_object_result", lambda r: _decode_object(r.object), *args,
        )

    def stat_object(self, project: ProjectHandle, bucket: str, key: str) -> BoundaryResult[Object]:
        return self._object_call("uplink_stat_object", project.value, _enc(bucket), _enc(key))

    def delete_object(self, project: ProjectHandle, bucket: str, key: str) -> BoundaryResult[Object]:
        return self._object_call("uplink_delete_object", project.value, _enc(bucket), _enc(key))

    def update_object_metadata(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        custom: Mapping[str, str],
    ) -> BoundaryResult[None]:
        metadata, _keep = _custom_metadata(custom)
        return self._error_call(
            "uplink_update_object_metadata",
            project.value, _enc(bucket), _enc(key), metadata, None,
        )

    def copy_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        new_bucket: str,
        new_key: str,
    ) -> BoundaryResult[Object]:
        return self._object_call(
            "uplink_copy_object",
            project.value, _enc(bucket), _enc(key), _enc(new_bucket), _enc(new_key), None,
        )

    def move_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        new_bucket: str,
        new_key: str,
    ) -> BoundaryResult[None]:
        return self._error_call(
            "uplink_move_object",
            project.value, _enc(bucket), _enc(key), _enc(new_bucket), _enc(new_key), None,
        )

    def list_objects(
        self,
        project: ProjectHandle,
        bucket: str,
        options: Optional[ListObjectsOptions] = None,
    ) -> BoundaryResult[ObjectIteratorHandle]:
        pointer = self._lib.uplink_list_objects(
            project.value, _enc(bucket), _list_options(options, abi.UplinkListObjectsOptions),
        )
        return self._iterator(pointer, ObjectIteratorHandle)

    # -------------------------------------------------------------------------
    # Single Upload
    # -------------------------------------------------------------------------

    def upload_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        options: Optional[UploadOptions] = None,
    ) -> BoundaryResult[UploadHandle]:
        c_options = None
        if options is not None:
            c_options = byref(abi.UplinkUploadOptions(expires=to_unix(options.expires)))
        return self._handle_call(
            "uplink_upload_object", "uplink_free_upload_result", "upload",
            UploadHandle, project.value, _enc(bucket), _enc(key), c_options,
        )

    def upload_write(self, upload: UploadHandle, data: bytes) -> BoundaryResult[int]:
        return self._value_call(
            "uplink_upload_write", "uplink_free_write_result",
            lambda r: int(r.bytes_written), upload.value, data, len(data),
        )

    def upload_commit(self, upload: UploadHandle) -> BoundaryResult[None]:
        return self._error_call("uplink_upload_commit", upload.value)

    def upload_abort(self, upload: UploadHandle) -> BoundaryResult[None]:
        return self._error_call("uplink_upload_abort", upload.value)

    def upload_set_custom_metadata(
        self,
        upload: UploadHandle,
        custom: Mapping[str, str],
    ) -> BoundaryResult[None]:
        metadata, _keep = _custom_metadata(custom)
        return self._error_call("uplink_upload_set_custom_metadata", upload.value, metadata)

    def upload_info(self, upload: UploadHandle) -> BoundaryResult[Object]:
        return self._object_call("uplink_upload_info", upload.value)

    # -------------------------------------------------------------------------
    # Download
    # -------------------------------------------------------------------------

    def download_object(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        options: Optional[DownloadOptions] = None,
    ) -> BoundaryResult[DownloadHandle]:
        c_options = None
        if options is not None:
            c_options = byref(abi.UplinkDownloadOptions(
                offset=options.offset, length=options.length,
            ))
        return self._handle_call(
            "uplink_download_object", "uplink_free_download_result", "download",
            DownloadHandle, project.value, _enc(bucket), _enc(key), c_options,
        )

    def download_read(self, download: DownloadHandle, length: int) -> BoundaryResult[bytes]:
        buffer = ctypes.create_string_buffer(max(length, 1))
        result = self._lib.uplink_download_read(download.value, buffer, length)
        count = int(result.bytes_read)
        free = self._lib.uplink_free_read_result
        return BoundaryResult(
            value=buffer.raw[:count],
            error=_raw_error(result.error),
            release=lambda: free(result),
        )

    def download_info(self, download: DownloadHandle) -> BoundaryResult[Object]:
        return self._object_call("uplink_download_info", download.value)

    def close_download(self, download: DownloadHandle) -> BoundaryResult[None]:
        return self._error_call("uplink_close_download", download.value)

    # -------------------------------------------------------------------------
    # Multipart
    # -------------------------------------------------------------------------

    def begin_upload(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        options: Optional[UploadOptions] = None,
    ) -> BoundaryResult[UploadInfo]:
        c_options = None
        if options is not None:
            c_options = byref(abi.UplinkUploadOptions(expires=to_unix(options.expires)))
        return self._value_call(
            "uplink_begin_upload", "uplink_free_upload_info_result",
            lambda r: _decode_upload_info(r.info),
            project.value, _enc(bucket), _enc(key), c_options,
        )

    def commit_upload(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
        options: Optional[CommitUploadOptions] = None,
    ) -> BoundaryResult[Object]:
        c_options = None
        _keep: list[Any] = []
        if options is not None:
            metadata, _keep = _custom_metadata(options.custom_metadata or {})
            c_options = byref(abi.UplinkCommitUploadOptions(custom_metadata=metadata))
        return self._value_call(
            "uplink_commit_upload", "uplink_free_commit_upload_result",
            lambda r: _decode_object(r.object),
            project.value, _enc(bucket), _enc(key), _enc(upload_id), c_options,
        )

    def abort_upload(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
    ) -> BoundaryResult[None]:
        return self._error_call(
            "uplink_abort_upload", project.value, _enc(bucket), _enc(key), _enc(upload_id),
        )

    def upload_part(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
    ) -> BoundaryResult[PartUploadHandle]:
        return self._handle_call(
            "uplink_upload_part", "uplink_free_part_upload_result", "part_upload",
            PartUploadHandle, project.value, _enc(bucket), _enc(key), _enc(upload_id), part_number,
        )

    def part_upload_write(self, part: PartUploadHandle, data: bytes) -> BoundaryResult[int]:
        return self._value_call(
            "uplink_part_upload_write", "uplink_free_write_result",
            lambda r: int(r.bytes_written), part.value, data, len(data),
        )

    def part_upload_commit(self, part: PartUploadHandle) -> BoundaryResult[None]:
        return self._error_call("uplink_part_upload_commit", part.value)

    def part_upload_abort(self, part: PartUploadHandle) -> BoundaryResult[None]:
        return self._error_call("uplink_part_upload_abort", part.value)

    def part_upload_set_etag(self, part: PartUploadHandle, etag: str) -> BoundaryResult[None]:
        return self._error_call("uplink_part_upload_set_etag", part.value, _enc(etag))

    def part_upload_info(self, part: PartUploadHandle) -> BoundaryResult[UploadPart]:
        return self._value_call(
            "uplink_part_upload_info", "uplink_free_part_result",
            lambda r: _decode_part(r.part), part.value,
        )

    def list_uploads(
        self,
        project: ProjectHandle,
        bucket: str,
        options: Optional[ListUploadsOptions] = None,
    ) -> BoundaryResult[UploadIteratorHandle]:
        pointer = self._lib.uplink_list_uploads(
            project.value, _enc(bucket), _list_options(options, abi.UplinkListUploadsOptions),
        )
        return self._iterator(pointer, UploadIteratorHandle)

    def list_upload_parts(
        self,
        project: ProjectHandle,
        bucket: str,
        key: str,
        upload_id: str,
        options: Optional[ListUploadPartsOptions] = None,
    ) -> BoundaryResult[PartIteratorHandle]:
        c_options = None
        if options is not None:
            c_options = byref(abi.UplinkListUploadPartsOptions(cursor=options.cursor))
        pointer = self._lib.uplink_list_upload_parts(
            project.value, _enc(bucket), _enc(key), _enc(upload_id), c_options,
        )
        return self._iterator(pointer, PartIteratorHandle)

    # -------------------------------------------------------------------------
    # Iterators
    # -------------------------------------------------------------------------

    def iterator_next(self, iterator: IteratorHandle) -> bool:
        kind, _, _ = _ITERATOR_KINDS[type(iterator)]
        return bool(getattr(self._lib, f"uplink_{kind}_iterator_next")(iterator.value))

    def iterator_item(self, iterator: IteratorHandle) -> BoundaryResult[object]:
        kind, free_name, decode = _ITERATOR_KINDS[type(iterator)]
        pointer = getattr(self._lib, f"uplink_{kind}_iterator_item")(iterator.value)
        if not pointer:
            return BoundaryResult()
        free = getattr(self._lib, free_name)
        return BoundaryResult(value=decode(pointer), release=lambda: free(pointer))

    def iterator_err(self, iterator: IteratorHandle) -> BoundaryResult[None]:
        kind, _, _ = _ITERATOR_KINDS[type(iterator)]
        return self._error_call(f"uplink_{kind}_iterator_err", iterator.value)

    # -------------------------------------------------------------------------
    # Edge
    # -------------------------------------------------------------------------

    def edge_register_access(
        self,
        config: EdgeConfig,
        access: AccessHandle,
        options: Optional[EdgeRegisterAccessOptions] = None,
    ) -> BoundaryResult[EdgeCredentials]:
        c_config = abi.EdgeConfig(
            auth_service_address=_enc(config.auth_service_address),
            certificate_pem=_enc(config.certificate_pem),
            insecure_unencrypted_connection=config.insecure_unencrypted_connection,
        )
        c_options = None
        if options is not None:
            c_options = byref(abi.EdgeRegisterAccessOptions(is_public=options.is_public))

        def decode(result: Any) -> Optional[EdgeCredentials]:
            if not result.credentials:
                return None
            credentials = result.credentials.contents
            return EdgeCredentials(
                access_key_id=_dec(credentials.access_key_id),
                secret_key=_dec(credentials.secret_key),
                endpoint=_dec(credentials.endpoint),
            )

        return self._value_call(
            "edge_register_access", "edge_free_credentials_result", decode,
            c_config, access.value, c_options,
        )

    def edge_join_share_url(
        self,
        base_url: str,
        access_key_id: str,
        bucket: str,
        key: str,
        options: Optional[ShareURLOptions] = None,
    ) -> BoundaryResult[str]:
        c_options = None
        if options is not None:
            c_options = byref(abi.EdgeShareURLOptions(raw=options.raw))
        return self._value_call(
            "edge_join_share_url", "uplink_free_string_result",
            lambda r: _decode_string(r.string),
            _enc(base_url), _enc(access_key_id), _enc(bucket), _enc(key), c_options,
        )

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def universe_is_empty(self) -> bool:
        return bool(self._lib.uplink_internal_UniverseIsEmpty())
