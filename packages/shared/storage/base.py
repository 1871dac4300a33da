"""Abstract base class for artifact storage backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import hashlib
from typing import BinaryIO


@dataclass
class StoredFile:
    """Information about a stored file."""

    storage_path: str
    location: str
    sha256_hash: str
    file_size_bytes: int


class FileStorageBackend(ABC):
    """
    Abstract base for artifact storage backends.

    Callers choose the key; backends only place bytes under it and report
    where they ended up.
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the name of this backend (e.g., 'local', 's3')."""
        pass

    @abstractmethod
    async def save(
        self,
        key: str,
        file: BinaryIO,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> StoredFile:
        """
        Store a file under a caller-chosen key.

        An existing object under the same key is overwritten.

        Args:
            key: Storage key, '/'-separated
            file: File-like object to save
            content_type: MIME type of the file
            metadata: String key/value pairs kept alongside the object

        Returns:
            StoredFile with key, location URL, hash, and size
        """
        pass

    @abstractmethod
    async def get(self, key: str) -> BinaryIO:
        """
        Retrieve a file by its storage key.

        Raises:
            FileNotFoundError: If file doesn't exist
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a file exists under the given key."""
        pass

    @staticmethod
    def compute_hash(file: BinaryIO) -> str:
        """
        Compute SHA-256 hash of a file.

        Args:
            file: File-like object (will be seeked to start)

        Returns:
            Hex-encoded SHA-256 hash
        """
        sha256 = hashlib.sha256()
        file.seek(0)
        for chunk in iter(lambda: file.read(8192), b""):
            sha256.update(chunk)
        file.seek(0)
        return sha256.hexdigest()

    @staticmethod
    def get_file_size(file: BinaryIO) -> int:
        """Get the size of a file in bytes."""
        file.seek(0, 2)  # Seek to end
        size = file.tell()
        file.seek(0)
        return size
