"""
Core module: Type definitions, error hierarchy, and configuration.

This module provides the foundational abstractions for the binding:
- Result/Either monad for decoding boundary outcomes
- Code-indexed error hierarchy with pattern matching support
- Configuration management with validation
"""

from uplink.core.types import (
    Result,
    Ok,
    Err,
    Handle,
    AccessHandle,
    EncryptionKeyHandle,
    ProjectHandle,
    UploadHandle,
    PartUploadHandle,
    DownloadHandle,
    IteratorHandle,
)
from uplink.core.errors import (
    ErrorCode,
    UplinkError,
    InvalidArgumentError,
    HandleReleasedError,
    error_from_code,
)
from uplink.core.config import UplinkConfig, LibraryConfig

__all__ = [
    "Result",
    "Ok",
    "Err",
    "Handle",
    "AccessHandle",
    "EncryptionKeyHandle",
    "ProjectHandle",
    "UploadHandle",
    "PartUploadHandle",
    "DownloadHandle",
    "IteratorHandle",
    "ErrorCode",
    "UplinkError",
    "InvalidArgumentError",
    "HandleReleasedError",
    "error_from_code",
    "UplinkConfig",
    "LibraryConfig",
]
