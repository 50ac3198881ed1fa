"""
Native ABI Declarations for libuplink (uplink-c)

ctypes mirrors of the C structs and the signature table applied to the
loaded library. Nothing here calls into the library; NativeBoundary does.

Conventions of the C side:
    - Handles are pointers to structs holding one size_t
    - Results are returned by value as {value_ptr, UplinkError*}
    - Result structs are freed by value with their uplink_free_*_result
    - Functions returning a bare UplinkError* are freed with uplink_free_error
"""

from __future__ import annotations

import ctypes
import logging
from ctypes import (
    POINTER,
    Structure,
    c_bool,
    c_char_p,
    c_int32,
    c_int64,
    c_size_t,
    c_uint32,
    c_void_p,
)
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# HANDLES AND ERRORS
# =============================================================================
class _Handle(Structure):
    _fields_ = [("_handle", c_size_t)]


class UplinkAccess(_Handle):
    pass


class UplinkProject(_Handle):
    pass


class UplinkDownload(_Handle):
    pass


class UplinkUpload(_Handle):
    pass


class UplinkPartUpload(_Handle):
    pass


class UplinkEncryptionKey(_Handle):
    pass


class UplinkError(Structure):
    _fields_ = [("code", c_int32), ("message", c_char_p)]


# =============================================================================
# CONFIG AND SHARING
# =============================================================================
class UplinkConfig(Structure):
    _fields_ = [
        ("user_agent", c_char_p),
        ("dial_timeout_milliseconds", c_int32),
        ("temp_directory", c_char_p),
    ]


class UplinkPermission(Structure):
    _fields_ = [
        ("allow_download", c_bool),
        ("allow_upload", c_bool),
        ("allow_list", c_bool),
        ("allow_delete", c_bool),
        ("not_before", c_int64),
        ("not_after", c_int64),
    ]


class UplinkSharePrefix(Structure):
    _fields_ = [("bucket", c_char_p), ("prefix", c_char_p)]


# =============================================================================
# VALUES
# =============================================================================
class UplinkBucket(Structure):
    _fields_ = [("name", c_char_p), ("created", c_int64)]


class UplinkSystemMetadata(Structure):
    _fields_ = [
        ("created", c_int64),
        ("expires", c_int64),
        ("content_length", c_int64),
    ]


class UplinkCustomMetadataEntry(Structure):
    # key/value are length-delimited, not NUL-terminated
    _fields_ = [
        ("key", c_void_p),
        ("key_length", c_size_t),
        ("value", c_void_p),
        ("value_length", c_size_t),
    ]


class UplinkCustomMetadata(Structure):
    _fields_ = [
        ("entries", POINTER(UplinkCustomMetadataEntry)),
        ("count", c_size_t),
    ]


class UplinkObject(Structure):
    _fields_ = [
        ("key", c_char_p),
        ("is_prefix", c_bool),
        ("system", UplinkSystemMetadata),
        ("custom", UplinkCustomMetadata),
    ]


class UplinkUploadInfo(Structure):
    _fields_ = [
        ("upload_id", c_char_p),
        ("key", c_char_p),
        ("is_prefix", c_bool),
        ("system", UplinkSystemMetadata),
        ("custom", UplinkCustomMetadata),
    ]


class UplinkPart(Structure):
    _fields_ = [
        ("part_number", c_uint32),
        ("size", c_size_t),
        ("modified", c_int64),
        ("etag", c_void_p),
        ("etag_length", c_size_t),
    ]


class EdgeCredentials(Structure):
    _fields_ = [
        ("access_key_id", c_char_p),
        ("secret_key", c_char_p),
        ("endpoint", c_char_p),
    ]


# =============================================================================
# OPTIONS
# =============================================================================
class UplinkUploadOptions(Structure):
    _fields_ = [("expires", c_int64)]


class UplinkDownloadOptions(Structure):
    _fields_ = [("offset", c_int64), ("length", c_int64)]


class UplinkListBucketsOptions(Structure):
    _fields_ = [("cursor", c_char_p)]


class UplinkListObjectsOptions(Structure):
    _fields_ = [
        ("prefix", c_char_p),
        ("cursor", c_char_p),
        ("recursive", c_bool),
        ("system", c_bool),
        ("custom", c_bool),
    ]


class UplinkListUploadsOptions(Structure):
    _fields_ = [
        ("prefix", c_char_p),
        ("cursor", c_char_p),
        ("recursive", c_bool),
        ("system", c_bool),
        ("custom", c_bool),
    ]


class UplinkListUploadPartsOptions(Structure):
    _fields_ = [("cursor", c_uint32)]


class UplinkCommitUploadOptions(Structure):
    _fields_ = [("custom_metadata", UplinkCustomMetadata)]


class EdgeConfig(Structure):
    _fields_ = [
        ("auth_service_address", c_char_p),
        ("certificate_pem", c_char_p),
        ("insecure_unencrypted_connection", c_bool),
    ]


class EdgeRegisterAccessOptions(Structure):
    _fields_ = [("is_public", c_bool)]


class EdgeShareURLOptions(Structure):
    _fields_ = [("raw", c_bool)]


# =============================================================================
# RESULTS
# =============================================================================
def _result(name: str, value_field: str, value_type: Any) -> type[Structure]:
    return type(name, (Structure,), {
        "_fields_": [(value_field, value_type), ("error", POINTER(UplinkError))],
    })


UplinkAccessResult = _result("UplinkAccessResult", "access", POINTER(UplinkAccess))
UplinkProjectResult = _result("UplinkProjectResult", "project", POINTER(UplinkProject))
UplinkBucketResult = _result("UplinkBucketResult", "bucket", POINTER(UplinkBucket))
UplinkObjectResult = _result("UplinkObjectResult", "object", POINTER(UplinkObject))
UplinkUploadResult = _result("UplinkUploadResult", "upload", POINTER(UplinkUpload))
UplinkPartUploadResult = _result("UplinkPartUploadResult", "part_upload", POINTER(UplinkPartUpload))
UplinkDownloadResult = _result("UplinkDownloadResult", "download", POINTER(UplinkDownload))
UplinkUploadInfoResult = _result("UplinkUploadInfoResult", "info", POINTER(UplinkUploadInfo))
UplinkCommitUploadResult = _result("UplinkCommitUploadResult", "object", POINTER(UplinkObject))
UplinkPartResult = _result("UplinkPartResult", "part", POINTER(UplinkPart))
UplinkStringResult = _result("UplinkStringResult", "string", c_void_p)
UplinkEncryptionKeyResult = _result(
    "UplinkEncryptionKeyResult", "encryption_key", POINTER(UplinkEncryptionKey),
)
UplinkWriteResult = _result("UplinkWriteResult", "bytes_written", c_size_t)
UplinkReadResult = _result("UplinkReadResult", "bytes_read", c_size_t)
EdgeCredentialsResult = _result("EdgeCredentialsResult", "credentials", POINTER(EdgeCredentials))


# =============================================================================
# SIGNATURES
# =============================================================================
_ERR = POINTER(UplinkError)
_P = c_void_p  # any handle or iterator pointer
_S = c_char_p

SIGNATURES: dict[str, tuple[Any, list[Any]]] = {
    # access
    "uplink_parse_access": (UplinkAccessResult, [_S]),
    "uplink_request_access_with_passphrase": (UplinkAccessResult, [_S, _S, _S]),
    "uplink_config_request_access_with_passphrase": (
        UplinkAccessResult, [UplinkConfig, _S, _S, _S],
    ),
    "uplink_access_satellite_address": (UplinkStringResult, [_P]),
    "uplink_access_serialize": (UplinkStringResult, [_P]),
    "uplink_access_share": (
        UplinkAccessResult, [_P, UplinkPermission, POINTER(UplinkSharePrefix), c_int64],
    ),
    "uplink_access_override_encryption_key": (_ERR, [_P, _S, _S, _P]),
    "uplink_derive_encryption_key": (UplinkEncryptionKeyResult, [_S, c_void_p, c_size_t]),
    "uplink_free_access_result": (None, [UplinkAccessResult]),
    "uplink_free_encryption_key_result": (None, [UplinkEncryptionKeyResult]),
    # project
    "uplink_open_project": (UplinkProjectResult, [_P]),
    "uplink_config_open_project": (UplinkProjectResult, [UplinkConfig, _P]),
    "uplink_close_project": (_ERR, [_P]),
    "uplink_revoke_access": (_ERR, [_P, _P]),
    "uplink_free_project_result": (None, [UplinkProjectResult]),
    # buckets
    "uplink_stat_bucket": (UplinkBucketResult, [_P, _S]),
    "uplink_create_bucket": (UplinkBucketResult, [_P, _S]),
    "uplink_ensure_bucket": (UplinkBucketResult, [_P, _S]),
    "uplink_delete_bucket": (UplinkBucketResult, [_P, _S]),
    "uplink_delete_bucket_with_objects": (UplinkBucketResult, [_P, _S]),
    "uplink_list_buckets": (_P, [_P, POINTER(UplinkListBucketsOptions)]),
    "uplink_bucket_iterator_next": (c_bool, [_P]),
    "uplink_bucket_iterator_item": (POINTER(UplinkBucket), [_P]),
    "uplink_bucket_iterator_err": (_ERR, [_P]),
    "uplink_free_bucket_iterator": (None, [_P]),
    "uplink_free_bucket_result": (None, [UplinkBucketResult]),
    "uplink_free_bucket": (None, [POINTER(UplinkBucket)]),
    # objects
    "uplink_stat_object": (UplinkObjectResult, [_P, _S, _S]),
    "uplink_delete_object": (UplinkObjectResult, [_P, _S, _S]),
    "uplink_update_object_metadata": (_ERR, [_P, _S, _S, UplinkCustomMetadata, c_void_p]),
    "uplink_copy_object": (UplinkObjectResult, [_P, _S, _S, _S, _S, c_void_p]),
    "uplink_move_object": (_ERR, [_P, _S, _S, _S, _S, c_void_p]),
    "uplink_list_objects": (_P, [_P, _S, POINTER(UplinkListObjectsOptions)]),
    "uplink_object_iterator_next": (c_bool, [_P]),
    "uplink_object_iterator_item": (POINTER(UplinkObject), [_P]),
    "uplink_object_iterator_err": (_ERR, [_P]),
    "uplink_free_object_iterator": (None, [_P]),
    "uplink_free_object_result": (None, [UplinkObjectResult]),
    "uplink_free_object": (None, [POINTER(UplinkObject)]),
    # upload
    "uplink_upload_object": (UplinkUploadResult, [_P, _S, _S, POINTER(UplinkUploadOptions)]),
    "uplink_upload_write": (UplinkWriteResult, [_P, c_void_p, c_size_t]),
    "uplink_upload_commit": (_ERR, [_P]),
    "uplink_upload_abort": (_ERR, [_P]),
    "uplink_upload_set_custom_metadata": (_ERR, [_P, UplinkCustomMetadata]),
    "uplink_upload_info": (UplinkObjectResult, [_P]),
    "uplink_free_upload_result": (None, [UplinkUploadResult]),
    "uplink_free_write_result": (None, [UplinkWriteResult]),
    # download
    "uplink_download_object": (
        UplinkDownloadResult, [_P, _S, _S, POINTER(UplinkDownloadOptions)],
    ),
    "uplink_download_read": (UplinkReadResult, [_P, c_void_p, c_size_t]),
    "uplink_download_info": (UplinkObjectResult, [_P]),
    "uplink_close_download": (_ERR, [_P]),
    "uplink_free_download_result": (None, [UplinkDownloadResult]),
    "uplink_free_read_result": (None, [UplinkReadResult]),
    # multipart
    "uplink_begin_upload": (UplinkUploadInfoResult, [_P, _S, _S, POINTER(UplinkUploadOptions)]),
    "uplink_commit_upload": (
        UplinkCommitUploadResult, [_P, _S, _S, _S, POINTER(UplinkCommitUploadOptions)],
    ),
    "uplink_abort_upload": (_ERR, [_P, _S, _S, _S]),
    "uplink_upload_part": (UplinkPartUploadResult, [_P, _S, _S, _S, c_uint32]),
    "uplink_part_upload_write": (UplinkWriteResult, [_P, c_void_p, c_size_t]),
    "uplink_part_upload_commit": (_ERR, [_P]),
    "uplink_part_upload_abort": (_ERR, [_P]),
    "uplink_part_upload_set_etag": (_ERR, [_P, _S]),
    "uplink_part_upload_info": (UplinkPartResult, [_P]),
    "uplink_list_uploads": (_P, [_P, _S, POINTER(UplinkListUploadsOptions)]),
    "uplink_upload_iterator_next": (c_bool, [_P]),
    "uplink_upload_iterator_item": (POINTER(UplinkUploadInfo), [_P]),
    "uplink_upload_iterator_err": (_ERR, [_P]),
    "uplink_free_upload_iterator": (None, [_P]),
    "uplink_list_upload_parts": (_P, [_P, _S, _S, _S, POINTER(UplinkListUploadPartsOptions)]),
    "uplink_part_iterator_next": (c_bool, [_P]),
    "uplink_part_iterator_item": (POINTER(UplinkPart), [_P]),
    "uplink_part_iterator_err": (_ERR, [_P]),
    "uplink_free_part_iterator": (None, [_P]),
    "uplink_free_upload_info_result": (None, [UplinkUploadInfoResult]),
    "uplink_free_upload_info": (None, [POINTER(UplinkUploadInfo)]),
    "uplink_free_commit_upload_result": (None, [UplinkCommitUploadResult]),
    "uplink_free_part_upload_result": (None, [UplinkPartUploadResult]),
    "uplink_free_part_result": (None, [UplinkPartResult]),
    "uplink_free_part": (None, [POINTER(UplinkPart)]),
    # edge
    "edge_register_access": (
        EdgeCredentialsResult, [EdgeConfig, _P, POINTER(EdgeRegisterAccessOptions)],
    ),
    "edge_join_share_url": (UplinkStringResult, [_S, _S, _S, _S, POINTER(EdgeShareURLOptions)]),
    "edge_free_credentials_result": (None, [EdgeCredentialsResult]),
    # shared
    "uplink_free_string_result": (None, [UplinkStringResult]),
    "uplink_free_error": (None, [_ERR]),
    "uplink_internal_UniverseIsEmpty": (c_bool, []),
}


def load_library(path: str) -> ctypes.CDLL:
    """
    Load libuplink and apply the signature table.

    Symbols missing from older library builds are skipped with a debug
    line; calling one later raises AttributeError from ctypes.

    Raises:
        OSError: If the shared library cannot be loaded
    """
    lib = ctypes.CDLL(path)
    for name, (restype, argtypes) in SIGNATURES.items():
        try:
            fn = getattr(lib, name)
        except AttributeError:
            logger.debug("Symbol %s not exported by %s", name, path)
            continue
        fn.restype = restype
        fn.argtypes = argtypes
    return lib
