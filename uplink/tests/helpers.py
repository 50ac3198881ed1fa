"""Small upload/download shortcuts used across the suite."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from uplink.models import DownloadOptions
from uplink.project import Project


def put_object(
    project: Project,
    bucket: str,
    key: str,
    data: bytes = b"",
    custom: Optional[Mapping[str, Any]] = None,
) -> None:
    """Upload and commit one object."""
    with project.upload_object(bucket, key) as upload:
        upload.write_all(data)
        if custom is not None:
            upload.set_custom_metadata(custom)
        upload.commit()


def read_object(
    project: Project,
    bucket: str,
    key: str,
    options: Optional[DownloadOptions] = None,
) -> bytes:
    with project.download_object(bucket, key, options) as download:
        return download.read_all()
