"""
StorageBackend abstract interface for uploaded receipts and invoices.
Only local disk is implemented; the files are served back at
settings.upload_url_prefix.
"""

import abc
import re
import secrets
import time
from pathlib import Path


class StorageBackend(abc.ABC):
    @abc.abstractmethod
    def save(self, data: bytes, filename: str, subfolder: str = "") -> str:
        """Persist data and return the storage path/key."""

    @abc.abstractmethod
    def load(self, path: str) -> bytes:
        """Load and return raw bytes from storage path/key."""

    @abc.abstractmethod
    def exists(self, path: str) -> bool:
        """Return True if the path/key exists in storage."""

    @abc.abstractmethod
    def delete(self, path: str) -> None:
        """Remove the path/key if present."""


class LocalDiskStorage(StorageBackend):
    """
    Stores files on the local filesystem.
    Root is set from settings.local_storage_path.
    """

    def __init__(self, root: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, data: bytes, filename: str, subfolder: str = "") -> str:
        target_dir = self.root / subfolder if subfolder else self.root
        target_dir.mkdir(parents=True, exist_ok=True)
        target_path = target_dir / filename
        target_path.write_bytes(data)
        # Return relative path string (portable across mounts)
        return target_path.relative_to(self.root).as_posix()

    def load(self, path: str) -> bytes:
        return (self.root / path).read_bytes()

    def exists(self, path: str) -> bool:
        return (self.root / path).exists()

    def delete(self, path: str) -> None:
        (self.root / path).unlink(missing_ok=True)


def unique_upload_name(original_name: str) -> str:
    """
    Build a collision-free name for an upload:
    <epoch ms>-<16 hex chars>-<original stem with non-alphanumerics replaced by _><ext>
    """
    original = Path(original_name or "upload")
    stem = re.sub(r"[^a-zA-Z0-9]", "_", original.stem) or "upload"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(8)}-{stem}{original.suffix.lower()}"


def public_url(path: str) -> str:
    from expense_api.settings import settings

    return f"{settings.upload_url_prefix.rstrip('/')}/{path}"


def get_storage() -> StorageBackend:
    """Factory: returns the configured storage backend."""
    from expense_api.settings import settings

    if settings.storage_backend == "local":
        return LocalDiskStorage(settings.local_storage_path)
    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")
