"""Local disk artifact storage backend for development."""

import json
from io import BytesIO
from pathlib import Path
from typing import BinaryIO

import aiofiles
import aiofiles.os

from packages.shared.storage.base import FileStorageBackend, StoredFile


class LocalFileStorage(FileStorageBackend):
    """
    Local disk storage backend for development.

    Keys map directly to paths below ``base_path``. Metadata, when given,
    is written next to the object as ``<name>.metadata.json``.
    """

    def __init__(self, base_path: str = "./artifacts"):
        self.base_path = Path(base_path)

    @property
    def backend_name(self) -> str:
        return "local"

    def _resolve(self, key: str) -> Path:
        """Map a key to a path, refusing keys that escape the base directory."""
        base = self.base_path.resolve()
        full_path = (base / key).resolve()
        if base not in full_path.parents:
            raise ValueError(f"Invalid storage key: {key}")
        return full_path

    async def save(
        self,
        key: str,
        file: BinaryIO,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> StoredFile:
        file_hash = self.compute_hash(file)
        file_size = self.get_file_size(file)

        full_path = self._resolve(key)
        await aiofiles.os.makedirs(full_path.parent, exist_ok=True)

        file.seek(0)
        content = file.read()
        async with aiofiles.open(full_path, "wb") as f:
            await f.write(content)

        if metadata:
            sidecar = full_path.with_name(f"{full_path.name}.metadata.json")
            async with aiofiles.open(sidecar, "w") as f:
                await f.write(json.dumps({"contentType": content_type, **metadata}))

        return StoredFile(
            storage_path=key,
            location=full_path.as_uri(),
            sha256_hash=file_hash,
            file_size_bytes=file_size,
        )

    async def get(self, key: str) -> BinaryIO:
        full_path = self._resolve(key)
        if not full_path.exists():
            raise FileNotFoundError(f"File not found: {key}")

        async with aiofiles.open(full_path, "rb") as f:
            content = await f.read()

        return BytesIO(content)

    async def exists(self, key: str) -> bool:
        return self._resolve(key).exists()
