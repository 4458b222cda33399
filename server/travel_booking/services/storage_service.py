"""Local object storage for uploaded files."""

import asyncio
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from ..core.config import settings

logger = logging.getLogger(__name__)

PAYMENT_PROOF_BUCKET = "payment-proofs"


@dataclass(frozen=True)
class StoredObject:
    """Location of an uploaded object."""

    bucket: str
    path: str
    public_url: str
    size: int


class StorageService:
    """
    Bucket/path object storage backed by a directory.

    The directory is expected to be served at ``public_url``; files are
    written off the event loop.
    """

    def __init__(self, base_dir: str | os.PathLike | None = None, public_url: str | None = None):
        self.base_dir = Path(base_dir or settings.storage_dir)
        self.public_url = (public_url or settings.storage_public_url).rstrip("/")

    def _resolve(self, bucket: str, path: str) -> Path:
        root = (self.base_dir / bucket).resolve()
        target = (root / path).resolve()
        if root != target and root not in target.parents:
            raise ValueError(f"Object path escapes bucket: {path}")
        return target

    def public_url_for(self, bucket: str, path: str) -> str:
        return f"{self.public_url}/{bucket}/{path}"

    async def upload(self, bucket: str, path: str, content: bytes) -> StoredObject:
        """Write an object and return where it can be fetched."""
        target = self._resolve(bucket, path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        await asyncio.to_thread(_write)

        logger.info(
            "Object uploaded",
            extra={"bucket": bucket, "path": path, "size_bytes": len(content)}
        )
        return StoredObject(
            bucket=bucket,
            path=path,
            public_url=self.public_url_for(bucket, path),
            size=len(content),
        )

    async def delete(self, bucket: str, path: str) -> bool:
        """Remove an object. Returns False if it did not exist."""
        target = self._resolve(bucket, path)

        def _unlink() -> bool:
            try:
                target.unlink()
            except FileNotFoundError:
                return False
            return True

        removed = await asyncio.to_thread(_unlink)
        if removed:
            logger.info("Object deleted", extra={"bucket": bucket, "path": path})
        return removed


def get_storage_service() -> StorageService:
    """Dependency returning the configured storage service."""
    return StorageService()
