"""Factory for creating storage backends based on configuration."""

from typing import TYPE_CHECKING

import aioboto3

from packages.shared.storage.base import FileStorageBackend
from packages.shared.storage.local import LocalFileStorage
from packages.shared.storage.s3 import S3FileStorage

if TYPE_CHECKING:
    from apps.api.config import Settings


def get_storage_backend(
    settings: "Settings",
    session: aioboto3.Session | None = None,
) -> FileStorageBackend:
    """
    Create the storage backend selected by ``settings.storage_backend``.

    Args:
        settings: Application settings
        session: Shared aioboto3 session for the S3 backend

    Returns:
        Configured FileStorageBackend instance
    """
    if settings.storage_backend == "s3":
        return S3FileStorage(
            bucket=settings.artifacts_bucket,
            endpoint_url=settings.s3_endpoint_url,
            region=settings.aws_region,
            session=session,
        )
    return LocalFileStorage(base_path=settings.local_artifact_path)
