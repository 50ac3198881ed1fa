"""
Boundary module: the seam between the binding and the storage library.

- protocol: the Boundary contract and the raw result/error records
- channel: decoding results into values or typed errors
- memory: in-process satellite for development and testing
- native: ctypes binding over the uplink-c shared library (imported lazily)
"""

from uplink.boundary.protocol import Boundary, BoundaryResult, RawError
from uplink.boundary.memory import InMemoryBoundary

__all__ = [
    "Boundary",
    "BoundaryResult",
    "RawError",
    "InMemoryBoundary",
]
