"""
Configuration Management for the Uplink Binding

Two layers of configuration:
- UplinkConfig: per-call connection hints handed to the boundary when an
  access is requested or a project is opened (dial timeout, user agent,
  temp directory). Absent means "boundary defaults".
- LibraryConfig: process-level settings for locating the native library
  and configuring logging, loaded from UPLINK_* environment variables.

Design:
- Immutable after validation
- Fail-fast on invalid configuration
- Type-safe with dataclasses
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from uplink.core.types import Result, Ok, Err
from uplink.core import constants as C


@dataclass(frozen=True)
class UplinkConfig:
    """
    Connection configuration passed to the boundary.
    
    Attributes:
        user_agent: Partner/user agent string reported to the satellite
        dial_timeout_milliseconds: Bound on initial connection setup (0 = default)
        temp_directory: Scratch directory the native library may use
    """
    
    user_agent: Optional[str] = None
    dial_timeout_milliseconds: int = 0
    temp_directory: Optional[str] = None
    
    def __post_init__(self) -> None:
        if self.dial_timeout_milliseconds < 0:
            raise ValueError("dial_timeout_milliseconds must be >= 0")


@dataclass(frozen=True)
class LibraryConfig:
    """Process-level binding configuration."""
    
    library_path: str = C.DEFAULT_LIBRARY_NAME
    log_level: str = "WARNING"
    log_json: bool = False
    
    @classmethod
    def from_env(cls) -> Result[LibraryConfig, str]:
        """
        Load configuration from environment variables.
        
        Environment variables are prefixed with UPLINK_.
        Example: UPLINK_LIBRARY_PATH=/opt/storj/libuplink.so
        """
        try:
            return Ok(cls(
                library_path=os.getenv(
                    f"{C.ENV_PREFIX}LIBRARY_PATH", C.DEFAULT_LIBRARY_NAME,
                ),
                log_level=os.getenv(f"{C.ENV_PREFIX}LOG_LEVEL", "WARNING").upper(),
                log_json=_as_bool(os.getenv(f"{C.ENV_PREFIX}LOG_JSON"), False),
            ))
        except (ValueError, TypeError) as e:
            return Err(f"Configuration error: {e}")
    
    def validate(self) -> Result[None, str]:
        """Validate configuration invariants."""
        if not self.library_path:
            return Err("library_path must not be empty")
        if self.log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            return Err(f"Unknown log level {self.log_level!r}")
        path = Path(self.library_path)
        # Bare names are resolved by the dynamic loader search path.
        if path.parent != Path(".") and not path.exists():
            return Err(f"Native library not found at {self.library_path}")
        return Ok(None)


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
