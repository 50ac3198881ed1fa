"""
Session Lifecycle: Access Grants

An Access is a serialized credential (satellite address, API key and
encryption context) held as a foreign handle. It is obtained in one of
three ways, each a context manager that frees the handle on exit:

    parse_access(serialized)
    request_access_with_passphrase(satellite, api_key, passphrase[, config])
    access.share(permission, prefixes)

An Access never changes once created; share() always produces a new,
narrower Access that is independent of its parent.

Usage:
    with uplink.parse_access(serialized) as access:
        with access.open_project() as project:
            project.ensure_bucket("photos")
"""

from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from typing import Iterator, Optional, Sequence, Union

from uplink import client
from uplink.boundary import channel
from uplink.boundary.protocol import Boundary
from uplink.core.config import UplinkConfig
from uplink.core.errors import InvalidArgumentError
from uplink.core.types import AccessHandle, EncryptionKeyHandle
from uplink.edge import EdgeCredential
from uplink.models import (
    EdgeConfig,
    EdgeRegisterAccessOptions,
    Permission,
    SharePrefix,
)
from uplink.project import Project
from uplink.registry import Lease, ResourceRegistry, default_registry, scoped


# =============================================================================
# ENCRYPTION KEY
# =============================================================================
class EncryptionKey:
    """Derived encryption key, usable with Access.override_encryption_key()."""

    __slots__ = ("_lease",)

    def __init__(self, lease: Lease[EncryptionKeyHandle]) -> None:
        self._lease = lease

    @property
    def handle(self) -> EncryptionKeyHandle:
        return self._lease.handle


# =============================================================================
# ACCESS
# =============================================================================
class Access:
    """Credential handle; owned by the `with` block that produced it."""

    __slots__ = ("_boundary", "_lease", "_registry")

    def __init__(
        self,
        boundary: Boundary,
        lease: Lease[AccessHandle],
        registry: ResourceRegistry,
    ) -> None:
        self._boundary = boundary
        self._lease = lease
        self._registry = registry

    @property
    def handle(self) -> AccessHandle:
        return self._lease.handle

    @property
    def boundary(self) -> Boundary:
        return self._boundary

    @contextmanager
    def open_project(
        self,
        config: Optional[UplinkConfig] = None,
        auto_close: bool = True,
    ) -> Iterator[Project]:
        """
        Open a project session bound to this access.

        With auto_close=False the caller must call project.close() exactly
        once inside the block; the session handle is freed at block exit
        either way.
        """
        lease = self._registry.claim(
            self._boundary.open_project(self.handle, config), "project",
        )
        project = Project(self._boundary, lease, self._registry)
        finalize = project.close if auto_close else None
        with scoped(lease, project, finalize=finalize) as opened:
            yield opened

    def open_project_with_config(
        self,
        config: UplinkConfig,
        auto_close: bool = True,
    ) -> AbstractContextManager[Project]:
        """Same as open_project(config, auto_close)."""
        return self.open_project(config, auto_close=auto_close)

    @contextmanager
    def share(
        self,
        permission: Permission,
        prefixes: Optional[Sequence[SharePrefix]] = None,
    ) -> Iterator[Access]:
        """
        Derive a restricted access.

        An empty or absent prefix list leaves every bucket and key
        reachable (within the permission).

        Raises:
            InvalidArgumentError: If permission is None
            UplinkError: If the boundary refuses the restriction
        """
        if permission is None:
            raise InvalidArgumentError("permission", "must not be None")
        restrictions = [
            p if isinstance(p, SharePrefix) else SharePrefix(**p)
            for p in (prefixes or ())
        ]
        lease = self._registry.claim(
            self._boundary.access_share(self.handle, permission, restrictions), "access",
        )
        with scoped(lease, Access(self._boundary, lease, self._registry)) as shared:
            yield shared

    def serialize(self) -> str:
        return channel.take(self._boundary.access_serialize(self.handle))

    def satellite_address(self) -> str:
        return channel.take(self._boundary.access_satellite_address(self.handle))

    def override_encryption_key(
        self,
        bucket: str,
        prefix: str,
        encryption_key: EncryptionKey,
    ) -> None:
        """Use `encryption_key` for everything under bucket/prefix."""
        if encryption_key is None:
            raise InvalidArgumentError("encryption_key", "must not be None")
        channel.check(self._boundary.access_override_encryption_key(
            self.handle, bucket, prefix, encryption_key.handle,
        ))

    def edge_register_access(
        self,
        config: EdgeConfig,
        options: Optional[EdgeRegisterAccessOptions] = None,
    ) -> EdgeCredential:
        """Register this access with the edge auth service."""
        credentials = channel.take(
            self._boundary.edge_register_access(config, self.handle, options),
        )
        return EdgeCredential(self._boundary, credentials)


# =============================================================================
# FACTORIES
# =============================================================================
@contextmanager
def _owned_access(
    boundary: Boundary,
    registry: ResourceRegistry,
    result,
) -> Iterator[Access]:
    lease = registry.claim(result, "access")
    with scoped(lease, Access(boundary, lease, registry)) as access:
        yield access


@contextmanager
def parse_access(
    serialized: str,
    boundary: Optional[Boundary] = None,
    registry: Optional[ResourceRegistry] = None,
) -> Iterator[Access]:
    """
    Parse a serialized access grant.

    Raises:
        InvalidArgumentError: If serialized is not a string
        InternalError: If the grant is malformed
    """
    if not isinstance(serialized, str):
        raise InvalidArgumentError("serialized", "must be a string")
    boundary = client.resolve(boundary)
    registry = registry if registry is not None else default_registry()
    with _owned_access(boundary, registry, boundary.parse_access(serialized)) as access:
        yield access


@contextmanager
def request_access_with_passphrase(
    satellite_address: str,
    api_key: str,
    passphrase: str,
    config: Optional[UplinkConfig] = None,
    boundary: Optional[Boundary] = None,
    registry: Optional[ResourceRegistry] = None,
) -> Iterator[Access]:
    """
    Request an access from the satellite, deriving the encryption key
    from `passphrase`. Performs a network round trip.
    """
    boundary = client.resolve(boundary)
    registry = registry if registry is not None else default_registry()
    result = boundary.request_access_with_passphrase(
        satellite_address, api_key, passphrase, config,
    )
    with _owned_access(boundary, registry, result) as access:
        yield access


def request_access_with_passphrase_and_config(
    config: UplinkConfig,
    satellite_address: str,
    api_key: str,
    passphrase: str,
    boundary: Optional[Boundary] = None,
    registry: Optional[ResourceRegistry] = None,
) -> AbstractContextManager[Access]:
    """request_access_with_passphrase() with an explicit connection config."""
    return request_access_with_passphrase(
        satellite_address, api_key, passphrase,
        config=config, boundary=boundary, registry=registry,
    )


@contextmanager
def derive_encryption_key(
    passphrase: str,
    salt: Union[bytes, bytearray, memoryview, str],
    boundary: Optional[Boundary] = None,
    registry: Optional[ResourceRegistry] = None,
) -> Iterator[EncryptionKey]:
    """
    Derive an encryption key from a passphrase and salt.

    Raises:
        InvalidArgumentError: If salt is neither bytes-like nor str
    """
    if isinstance(salt, str):
        salt_bytes = salt.encode("utf-8")
    elif isinstance(salt, (bytes, bytearray, memoryview)):
        salt_bytes = bytes(salt)
    else:
        raise InvalidArgumentError("salt", f"must be bytes or str, got {type(salt).__name__}")
    boundary = client.resolve(boundary)
    registry = registry if registry is not None else default_registry()
    lease = registry.claim(
        boundary.derive_encryption_key(passphrase, salt_bytes), "encryption_key",
    )
    with scoped(lease, EncryptionKey(lease)) as key:
        yield key
