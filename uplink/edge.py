"""
Edge Credentials: S3-Compatible Gateway Access

An Access registered with the edge auth service yields an access key id,
secret key and endpoint usable by any S3 client. The access key id also
addresses linkshare URLs.
"""

from __future__ import annotations

from typing import Optional

from uplink.boundary import channel
from uplink.boundary.protocol import Boundary
from uplink.models import EdgeCredentials, ShareURLOptions


class EdgeCredential:
    """
    Registered gateway credentials.
    
    Plain value object; nothing to close.
    """
    
    __slots__ = ("_boundary", "_credentials")
    
    def __init__(self, boundary: Boundary, credentials: EdgeCredentials) -> None:
        self._boundary = boundary
        self._credentials = credentials
    
    @property
    def access_key_id(self) -> str:
        return self._credentials.access_key_id
    
    @property
    def secret_key(self) -> str:
        return self._credentials.secret_key
    
    @property
    def endpoint(self) -> str:
        return self._credentials.endpoint
    
    @property
    def credentials(self) -> EdgeCredentials:
        return self._credentials
    
    def join_share_url(
        self,
        base_url: str,
        bucket: str = "",
        key: str = "",
        options: Optional[ShareURLOptions] = None,
    ) -> str:
        """
        Build a linkshare URL for this access.
        
        With `ShareURLOptions(raw=True)` the URL serves the object content
        directly; otherwise it points at the landing page. An empty key
        shares the whole bucket, an empty bucket the whole access.
        """
        return channel.take(self._boundary.edge_join_share_url(
            base_url, self.access_key_id, bucket or "", key or "", options,
        ))
    
    def __repr__(self) -> str:
        return (
            f"EdgeCredential(access_key_id={self.access_key_id!r}, "
            f"endpoint={self.endpoint!r})"
        )
