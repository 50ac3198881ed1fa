"""
Project Session: Buckets, Objects, Transfers and Multipart Uploads

A Project is an open session with the satellite, obtained from
Access.open_project(). Every operation below is a thin, typed veneer over
one boundary call; handle-producing operations (uploads, downloads, part
uploads, listings) are context managers that free their handle on exit.

Usage:
    with access.open_project() as project:
        project.ensure_bucket("photos")
        with project.upload_object("photos", "cat.jpg") as upload:
            upload.write_all(data)
            upload.commit()
        with project.download_object("photos", "cat.jpg") as download:
            content = download.read_all()
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator, Mapping, Optional

from uplink.boundary import channel
from uplink.boundary.protocol import Boundary
from uplink.core.types import ProjectHandle
from uplink.iterators import (
    BucketIterator,
    ObjectIterator,
    UploadIterator,
    UploadPartIterator,
    open_listing,
)
from uplink.models import (
    Bucket,
    CommitUploadOptions,
    DownloadOptions,
    ListBucketsOptions,
    ListObjectsOptions,
    ListUploadPartsOptions,
    ListUploadsOptions,
    Object,
    UploadInfo,
    UploadOptions,
    normalize_custom_metadata,
)
from uplink.registry import Lease, ResourceRegistry, scoped
from uplink.transfer import Download, PartUpload, Upload

if TYPE_CHECKING:
    from uplink.access import Access

logger = logging.getLogger(__name__)


class Project:
    """Open satellite session; owned by the `with` block that opened it."""

    __slots__ = ("_boundary", "_lease", "_registry")

    def __init__(
        self,
        boundary: Boundary,
        lease: Lease[ProjectHandle],
        registry: ResourceRegistry,
    ) -> None:
        self._boundary = boundary
        self._lease = lease
        self._registry = registry

    @property
    def handle(self) -> ProjectHandle:
        return self._lease.handle

    def close(self) -> None:
        """Close the session; forwarded every time it is called."""
        channel.check(self._boundary.close_project(self.handle))
        logger.debug("Closed project #%d", self._lease.token)

    def revoke_access(self, access: Access) -> None:
        """Revoke `access`, which must have been derived from this project's access."""
        channel.check(self._boundary.revoke_access(self.handle, access.handle))

    # =========================================================================
    # BUCKETS
    # =========================================================================
    def stat_bucket(self, bucket: str) -> Bucket:
        return channel.take(self._boundary.stat_bucket(self.handle, bucket))

    def create_bucket(self, bucket: str) -> Bucket:
        """
        Raises:
            BucketAlreadyExistsError: If the bucket exists
            BucketNameInvalidError: If the name is not a valid bucket name
        """
        return channel.take(self._boundary.create_bucket(self.handle, bucket))

    def ensure_bucket(self, bucket: str) -> Bucket:
        """Create the bucket if missing; succeeds when it already exists."""
        return channel.take(self._boundary.ensure_bucket(self.handle, bucket))

    def delete_bucket(self, bucket: str) -> Bucket:
        """
        Raises:
            BucketNotEmptyError: If the bucket still holds objects
            BucketNotFoundError: If the bucket does not exist
        """
        return channel.take(self._boundary.delete_bucket(self.handle, bucket))

    def delete_bucket_with_objects(self, bucket: str) -> Bucket:
        return channel.take(self._boundary.delete_bucket_with_objects(self.handle, bucket))

    @contextmanager
    def list_buckets(
        self,
        options: Optional[ListBucketsOptions] = None,
    ) -> Iterator[BucketIterator]:
        """Context manager yielding a BucketIterator."""
        with open_listing(
            self._boundary, self._registry,
            self._boundary.list_buckets(self.handle, options),
            "bucket_iterator", BucketIterator,
        ) as listing:
            yield listing

    # =========================================================================
    # OBJECTS
    # =========================================================================
    def stat_object(self, bucket: str, key: str) -> Object:
        return channel.take(self._boundary.stat_object(self.handle, bucket, key))

    def delete_object(self, bucket: str, key: str) -> Optional[Object]:
        """Delete `key`; returns the deleted object, or None if it did not exist."""
        return channel.take(self._boundary.delete_object(self.handle, bucket, key))

    def update_object_metadata(
        self,
        bucket: str,
        key: str,
        custom: Optional[Mapping[Any, Any]],
    ) -> None:
        """Replace the whole custom metadata set of a committed object."""
        channel.check(self._boundary.update_object_metadata(
            self.handle, bucket, key, normalize_custom_metadata(custom),
        ))

    def copy_object(self, bucket: str, key: str, new_bucket: str, new_key: str) -> Object:
        return channel.take(self._boundary.copy_object(
            self.handle, bucket, key, new_bucket, new_key,
        ))

    def move_object(self, bucket: str, key: str, new_bucket: str, new_key: str) -> None:
        channel.check(self._boundary.move_object(
            self.handle, bucket, key, new_bucket, new_key,
        ))

    @contextmanager
    def list_objects(
        self,
        bucket: str,
        options: Optional[ListObjectsOptions] = None,
    ) -> Iterator[ObjectIterator]:
        """
        Context manager yielding an ObjectIterator.

        Non-recursive listings collapse keys below the next "/" into prefix
        entries (is_prefix=True).
        """
        with open_listing(
            self._boundary, self._registry,
            self._boundary.list_objects(self.handle, bucket, options),
            "object_iterator", ObjectIterator,
        ) as listing:
            yield listing

    # =========================================================================
    # SINGLE-OBJECT TRANSFERS
    # =========================================================================
    @contextmanager
    def upload_object(
        self,
        bucket: str,
        key: str,
        options: Optional[UploadOptions] = None,
    ) -> Iterator[Upload]:
        """
        Open a write stream for `key`.

        An upload neither committed nor aborted when the block exits is
        aborted; nothing becomes visible unless commit() ran.
        """
        lease = self._registry.claim(
            self._boundary.upload_object(self.handle, bucket, key, options), "upload",
        )
        upload = Upload(self._boundary, lease, bucket=bucket, key=key)
        with scoped(
            lease, upload,
            finalize=upload._abort_abandoned,
            on_error=upload._abort_unfinished,
        ) as opened:
            yield opened

    @contextmanager
    def download_object(
        self,
        bucket: str,
        key: str,
        options: Optional[DownloadOptions] = None,
        auto_close: bool = True,
    ) -> Iterator[Download]:
        """
        Open a read stream over `key` (or a byte range of it).

        With auto_close=False the caller must call download.close() inside
        the block.
        """
        lease = self._registry.claim(
            self._boundary.download_object(self.handle, bucket, key, options), "download",
        )
        download = Download(self._boundary, lease)
        with scoped(lease, download, finalize=download.close if auto_close else None) as opened:
            yield opened

    # =========================================================================
    # MULTIPART UPLOADS
    # =========================================================================
    def begin_upload(
        self,
        bucket: str,
        key: str,
        options: Optional[UploadOptions] = None,
    ) -> UploadInfo:
        """Start a multipart upload; the returned upload_id names it from now on."""
        return channel.take(self._boundary.begin_upload(self.handle, bucket, key, options))

    @contextmanager
    def upload_part(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        part_number: int,
    ) -> Iterator[PartUpload]:
        """
        Open a write stream for one part.

        Every part except the last must reach MIN_PART_SIZE bytes; this is
        only checked by commit_upload().
        """
        lease = self._registry.claim(
            self._boundary.upload_part(self.handle, bucket, key, upload_id, part_number),
            "part_upload",
        )
        part = PartUpload(
            self._boundary, lease,
            bucket=bucket, key=key, upload_id=upload_id, part_number=part_number,
        )
        with scoped(
            lease, part,
            finalize=part._abort_abandoned,
            on_error=part._abort_unfinished,
        ) as opened:
            yield opened

    def commit_upload(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        options: Optional[CommitUploadOptions] = None,
    ) -> Object:
        """
        Assemble the committed parts into one object.

        Raises:
            InternalError: If a non-final part is below MIN_PART_SIZE
        """
        if options is not None and options.custom_metadata is not None:
            options = CommitUploadOptions(
                custom_metadata=normalize_custom_metadata(options.custom_metadata),
            )
        return channel.take(self._boundary.commit_upload(
            self.handle, bucket, key, upload_id, options,
        ))

    def abort_upload(self, bucket: str, key: str, upload_id: str) -> None:
        channel.check(self._boundary.abort_upload(self.handle, bucket, key, upload_id))

    @contextmanager
    def list_uploads(
        self,
        bucket: str,
        options: Optional[ListUploadsOptions] = None,
    ) -> Iterator[UploadIterator]:
        """Context manager yielding an UploadIterator over pending multipart uploads."""
        with open_listing(
            self._boundary, self._registry,
            self._boundary.list_uploads(self.handle, bucket, options),
            "upload_iterator", UploadIterator,
        ) as listing:
            yield listing

    @contextmanager
    def list_upload_parts(
        self,
        bucket: str,
        key: str,
        upload_id: str,
        options: Optional[ListUploadPartsOptions] = None,
    ) -> Iterator[UploadPartIterator]:
        """Context manager yielding an UploadPartIterator over committed parts."""
        with open_listing(
            self._boundary, self._registry,
            self._boundary.list_upload_parts(self.handle, bucket, key, upload_id, options),
            "part_iterator", UploadPartIterator,
        ) as listing:
            yield listing
