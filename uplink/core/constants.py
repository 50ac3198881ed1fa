"""
System-Wide Constants for the Uplink Binding

All magic numbers of the native boundary contract centralized here:
error codes, the end-of-stream sentinel, size units and multipart limits.
"""

from typing import Final

# =============================================================================
# SIZE AND TIME UNITS
# =============================================================================
KB: Final[int] = 1024
MB: Final[int] = 1024 * KB
GB: Final[int] = 1024 * MB

SECOND_MS: Final[int] = 1000

# =============================================================================
# BOUNDARY ERROR CODES
# =============================================================================
# Reserved by the read path: "no more bytes", never a failure.
EOF: Final[int] = -1

UPLINK_ERROR_INTERNAL: Final[int] = 0x02
UPLINK_ERROR_CANCELED: Final[int] = 0x03
UPLINK_ERROR_INVALID_HANDLE: Final[int] = 0x04
UPLINK_ERROR_TOO_MANY_REQUESTS: Final[int] = 0x05
UPLINK_ERROR_BANDWIDTH_LIMIT_EXCEEDED: Final[int] = 0x06
UPLINK_ERROR_STORAGE_LIMIT_EXCEEDED: Final[int] = 0x07
UPLINK_ERROR_SEGMENTS_LIMIT_EXCEEDED: Final[int] = 0x08

UPLINK_ERROR_BUCKET_NAME_INVALID: Final[int] = 0x10
UPLINK_ERROR_BUCKET_ALREADY_EXISTS: Final[int] = 0x11
UPLINK_ERROR_BUCKET_NOT_EMPTY: Final[int] = 0x12
UPLINK_ERROR_BUCKET_NOT_FOUND: Final[int] = 0x13

UPLINK_ERROR_OBJECT_KEY_INVALID: Final[int] = 0x20
UPLINK_ERROR_OBJECT_NOT_FOUND: Final[int] = 0x21
UPLINK_ERROR_UPLOAD_DONE: Final[int] = 0x22

EDGE_ERROR_AUTH_DIAL_FAILED: Final[int] = 0x30
EDGE_ERROR_REGISTER_ACCESS_FAILED: Final[int] = 0x31

# =============================================================================
# MULTIPART
# =============================================================================
# Every part except the last must reach this size; checked at commit_upload.
MIN_PART_SIZE: Final[int] = 5 * MB
FIRST_PART_NUMBER: Final[int] = 1

# =============================================================================
# TRANSFER DEFAULTS
# =============================================================================
DEFAULT_CHUNK_SIZE: Final[int] = 32 * KB
WHOLE_OBJECT_LENGTH: Final[int] = -1

# =============================================================================
# LISTING
# =============================================================================
PREFIX_DELIMITER: Final[str] = "/"

# =============================================================================
# BUCKET NAMING
# =============================================================================
BUCKET_NAME_MIN_LENGTH: Final[int] = 3
BUCKET_NAME_MAX_LENGTH: Final[int] = 63

# =============================================================================
# ENVIRONMENT
# =============================================================================
ENV_PREFIX: Final[str] = "UPLINK_"
DEFAULT_LIBRARY_NAME: Final[str] = "libuplink.so"
