"""
Process-Wide Boundary Selection

The binding talks to exactly one Boundary unless a call passes its own.
By default that is the native library, loaded lazily on first use from
UPLINK_LIBRARY_PATH; tests install an InMemoryBoundary instead.

Usage:
    uplink.set_boundary(InMemoryBoundary())
    with uplink.parse_access(serialized) as access:
        ...
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from uplink.boundary.protocol import Boundary
from uplink.core.config import LibraryConfig

logger = logging.getLogger(__name__)

_boundary: Optional[Boundary] = None
_lock = threading.Lock()


def get_boundary() -> Boundary:
    """
    Return the process default boundary, loading the native library if needed.
    
    Raises:
        ValueError: If the UPLINK_* environment is invalid
        OSError: If the native library cannot be loaded
    """
    global _boundary
    with _lock:
        if _boundary is None:
            # Deferred so that importing uplink never requires libuplink.
            from uplink.boundary.native import NativeBoundary
            
            loaded = LibraryConfig.from_env()
            if loaded.is_err():
                raise ValueError(loaded.error)
            config = loaded.unwrap()
            _boundary = NativeBoundary.from_config(config)
            logger.info("Using native boundary from %s", config.library_path)
        return _boundary


def set_boundary(boundary: Optional[Boundary]) -> None:
    """Install `boundary` as the process default; None restores lazy loading."""
    global _boundary
    with _lock:
        _boundary = boundary


def resolve(boundary: Optional[Boundary] = None) -> Boundary:
    return boundary if boundary is not None else get_boundary()
