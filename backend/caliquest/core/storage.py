"""
Blob storage for uploaded exercise videos.

Files are written under ``MEDIA_ROOT`` with a generated key and served back
through the ``MEDIA_URL`` static mount.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Optional
import contextlib
import logging
import secrets
import string
import time

from .config import settings
from .exceptions import UploadRejected


logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024
_KEY_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class StoredBlob:
    """Location of an uploaded blob."""

    key: str
    url: str


def generate_key(filename: str, prefix: str) -> str:
    """
    Build a storage key of the form ``{prefix}/{epoch_ms}_{random}.{ext}``.

    Args:
        filename: Original client filename, used only for its extension
        prefix: Folder-like namespace (e.g. ``exercises``)

    Returns:
        str: The generated key
    """
    extension = Path(filename or "").suffix.lower().lstrip(".")
    token = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(7))
    name = f"{int(time.time() * 1000)}_{token}"
    if extension:
        name = f"{name}.{extension}"
    return f"{prefix}/{name}"


class LocalBlobStorage:
    """
    Filesystem-backed blob store.

    Args:
        root: Directory that holds the blobs
        base_url: Public URL prefix the root directory is served under
        allowed_extensions: Accepted file extensions (without dot)
        max_size: Maximum accepted payload size in bytes
    """

    def __init__(
        self,
        root: str | Path,
        base_url: str,
        allowed_extensions: Optional[Iterable[str]] = None,
        max_size: Optional[int] = None,
    ) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")
        self.allowed_extensions = {
            ext.lower().lstrip(".") for ext in (allowed_extensions or [])
        }
        self.max_size = max_size

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root.resolve() not in path.parents:
            raise UploadRejected("Invalid storage key", details={"key": key})
        return path

    def upload(self, source: BinaryIO, filename: str, prefix: str) -> StoredBlob:
        """
        Copy ``source`` into the store under a generated key.

        Raises:
            UploadRejected: Extension not allowed or payload over the size limit
        """
        extension = Path(filename or "").suffix.lower().lstrip(".")
        if self.allowed_extensions and extension not in self.allowed_extensions:
            logger.info(f"Rejected upload {filename!r}: extension not allowed")
            raise UploadRejected(
                "Unsupported file type",
                details={
                    "filename": filename,
                    "allowed_extensions": sorted(self.allowed_extensions),
                },
            )

        key = generate_key(filename, prefix)
        target = self.path_for(key)
        target.parent.mkdir(parents=True, exist_ok=True)

        if hasattr(source, "seek"):
            with contextlib.suppress(OSError, ValueError):
                source.seek(0)

        written = 0
        with target.open("wb") as buffer:
            while True:
                chunk = source.read(_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if self.max_size is not None and written > self.max_size:
                    break
                buffer.write(chunk)

        if self.max_size is not None and written > self.max_size:
            target.unlink(missing_ok=True)
            logger.info(f"Rejected upload {filename!r}: larger than {self.max_size} bytes")
            raise UploadRejected(
                "File is too large",
                details={"filename": filename, "max_size": self.max_size},
            )

        logger.info(f"Stored blob {key} ({written} bytes)")
        return StoredBlob(key=key, url=self.url_for(key))

    def delete(self, key: str) -> bool:
        """
        Remove a blob. Missing keys are ignored.

        Returns:
            bool: True if a file was removed
        """
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted blob {key}")
        return True

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()


def get_blob_storage() -> LocalBlobStorage:
    """Dependency returning the configured video store."""
    return LocalBlobStorage(
        settings.MEDIA_ROOT,
        settings.MEDIA_URL,
        allowed_extensions=settings.ALLOWED_VIDEO_EXTENSIONS,
        max_size=settings.MAX_VIDEO_UPLOAD_SIZE,
    )


def ensure_media_root() -> Path:
    root = Path(settings.MEDIA_ROOT)
    root.mkdir(parents=True, exist_ok=True)
    return root
