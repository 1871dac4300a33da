"""S3 artifact storage backend for production."""

from io import BytesIO
from typing import BinaryIO

import aioboto3
from botocore.exceptions import ClientError

from packages.shared.storage.base import FileStorageBackend, StoredFile


class S3FileStorage(FileStorageBackend):
    """
    S3 storage backend for production.

    Supports both AWS S3 and S3-compatible stores such as MinIO (via
    endpoint_url configuration).
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        region: str = "us-east-1",
        session: aioboto3.Session | None = None,
    ):
        """
        Initialize S3 file storage.

        Args:
            bucket: S3 bucket name
            endpoint_url: Custom endpoint URL for MinIO (None for AWS S3)
            region: AWS region
            session: aioboto3 session; credentials come from env/IAM when not set
        """
        self.bucket = bucket
        self.endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None
        self.region = region
        self._session = session or aioboto3.Session()

    @property
    def backend_name(self) -> str:
        return "s3"

    def _get_client_kwargs(self) -> dict:
        """Build kwargs for S3 client."""
        kwargs = {
            "region_name": self.region,
        }
        if self.endpoint_url:
            kwargs["endpoint_url"] = self.endpoint_url
        return kwargs

    def location_for(self, key: str) -> str:
        """Public URL of an object."""
        if self.endpoint_url:
            return f"{self.endpoint_url}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def save(
        self,
        key: str,
        file: BinaryIO,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> StoredFile:
        file_hash = self.compute_hash(file)
        file_size = self.get_file_size(file)

        file.seek(0)
        async with self._session.client("s3", **self._get_client_kwargs()) as s3:
            await s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=file.read(),
                ContentType=content_type,
                Metadata=metadata or {},
            )

        return StoredFile(
            storage_path=key,
            location=self.location_for(key),
            sha256_hash=file_hash,
            file_size_bytes=file_size,
        )

    async def get(self, key: str) -> BinaryIO:
        async with self._session.client("s3", **self._get_client_kwargs()) as s3:
            try:
                response = await s3.get_object(Bucket=self.bucket, Key=key)
                content = await response["Body"].read()
                return BytesIO(content)
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") == "NoSuchKey":
                    raise FileNotFoundError(f"File not found: {key}")
                raise

    async def exists(self, key: str) -> bool:
        async with self._session.client("s3", **self._get_client_kwargs()) as s3:
            try:
                await s3.head_object(Bucket=self.bucket, Key=key)
                return True
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey"):
                    return False
                raise
