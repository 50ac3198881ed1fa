"""
uplink: Python binding for the Storj uplink library.

Every foreign resource (access, project, upload, download, iterator) is
obtained from a context manager and released when its block exits.

Usage:
    import uplink

    with uplink.request_access_with_passphrase(satellite, api_key, passphrase) as access:
        with access.open_project() as project:
            project.ensure_bucket("photos")
            with project.upload_object("photos", "cat.jpg") as upload:
                upload.write_all(data)
                upload.commit()
"""

from uplink.access import (
    Access,
    EncryptionKey,
    derive_encryption_key,
    parse_access,
    request_access_with_passphrase,
    request_access_with_passphrase_and_config,
)
from uplink.boundary import Boundary, InMemoryBoundary
from uplink.client import get_boundary, set_boundary
from uplink.core.config import LibraryConfig, UplinkConfig
from uplink.core.errors import (
    BandwidthLimitExceededError,
    BucketAlreadyExistsError,
    BucketNameInvalidError,
    BucketNotEmptyError,
    BucketNotFoundError,
    CanceledError,
    EdgeAuthDialFailedError,
    EdgeRegisterAccessFailedError,
    ErrorCode,
    HandleReleasedError,
    InternalError,
    InvalidArgumentError,
    InvalidHandleError,
    ObjectKeyInvalidError,
    ObjectKeyNotFoundError,
    SegmentsLimitExceededError,
    StorageLimitExceededError,
    TooManyRequestsError,
    UplinkError,
    UploadDoneError,
)
from uplink.edge import EdgeCredential
from uplink.iterators import (
    BucketIterator,
    ObjectIterator,
    UploadIterator,
    UploadPartIterator,
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
)
from uplink.observability import configure_from_env, setup_logging
from uplink.project import Project
from uplink.registry import outstanding
from uplink.transfer import Download, PartUpload, Upload

__version__ = "1.0.0"

__all__ = [
    # Access
    "Access",
    "EncryptionKey",
    "derive_encryption_key",
    "parse_access",
    "request_access_with_passphrase",
    "request_access_with_passphrase_and_config",
    # Sessions and streams
    "Project",
    "Upload",
    "PartUpload",
    "Download",
    "BucketIterator",
    "ObjectIterator",
    "UploadIterator",
    "UploadPartIterator",
    "EdgeCredential",
    # Boundary selection
    "Boundary",
    "InMemoryBoundary",
    "get_boundary",
    "set_boundary",
    "outstanding",
    # Configuration
    "UplinkConfig",
    "LibraryConfig",
    "setup_logging",
    "configure_from_env",
    # Records and options
    "Bucket",
    "Object",
    "SystemMetadata",
    "UploadInfo",
    "UploadPart",
    "Permission",
    "SharePrefix",
    "EdgeConfig",
    "EdgeCredentials",
    "EdgeRegisterAccessOptions",
    "ShareURLOptions",
    "UploadOptions",
    "DownloadOptions",
    "ListBucketsOptions",
    "ListObjectsOptions",
    "ListUploadsOptions",
    "ListUploadPartsOptions",
    "CommitUploadOptions",
    # Errors
    "ErrorCode",
    "UplinkError",
    "InternalError",
    "CanceledError",
    "InvalidHandleError",
    "TooManyRequestsError",
    "BandwidthLimitExceededError",
    "StorageLimitExceededError",
    "SegmentsLimitExceededError",
    "BucketNameInvalidError",
    "BucketAlreadyExistsError",
    "BucketNotEmptyError",
    "BucketNotFoundError",
    "ObjectKeyInvalidError",
    "ObjectKeyNotFoundError",
    "UploadDoneError",
    "EdgeAuthDialFailedError",
    "EdgeRegisterAccessFailedError",
    "InvalidArgumentError",
    "HandleReleasedError",
]
