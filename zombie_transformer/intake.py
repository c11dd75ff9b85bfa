"""Upload intake and transient file cleanup."""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional
from uuid import uuid4

from starlette.datastructures import UploadFile

from .errors import ValidationError

logger = logging.getLogger("zombie_transformer.intake")

DEFAULT_EXTENSION = ".png"
CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class UploadedAsset:
    """A validated upload stored in the transient directory for one request."""

    name: str
    path: Path
    content_type: str
    size: int

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


class IntakeValidator:
    """Checks a single image upload and writes it under a unique name."""

    def __init__(self, upload_dir: Path, max_bytes: int, chunk_size: int = CHUNK_SIZE) -> None:
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes
        self.chunk_size = chunk_size

    async def accept(self, upload: UploadFile) -> UploadedAsset:
        """Read the upload in chunks, stopping as soon as it passes ``max_bytes``."""
        try:
            self._check_type(upload.content_type)
            if upload.size is not None and upload.size > self.max_bytes:
                raise self._too_large(upload.size)

            chunks: List[bytes] = []
            total = 0
            while True:
                chunk = await upload.read(self.chunk_size)
                if not chunk:
                    break
                total += len(chunk)
                if total > self.max_bytes:
                    logger.warning("Upload %s exceeded %d bytes while streaming", upload.filename, self.max_bytes)
                    raise self._too_large(total)
                chunks.append(chunk)
        finally:
            await upload.close()
        return self.store(upload.filename, upload.content_type, b"".join(chunks))

    def store(self, filename: Optional[str], content_type: Optional[str], data: bytes) -> UploadedAsset:
        self._check_type(content_type)
        if not data:
            raise ValidationError(f"{filename or 'upload'} is empty")
        if len(data) > self.max_bytes:
            raise self._too_large(len(data))

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        name = self._assign_name(filename)
        path = (self.upload_dir / name).resolve()
        path.write_bytes(data)
        logger.info("Stored upload %s (%s, %d bytes)", name, content_type, len(data))
        return UploadedAsset(name=name, path=path, content_type=content_type, size=len(data))

    @staticmethod
    def _check_type(content_type: Optional[str]) -> None:
        if content_type is None or not content_type.startswith("image/"):
            raise ValidationError("Only image files are allowed")

    def _too_large(self, size: int) -> ValidationError:
        return ValidationError(
            f"File too large: at least {size} bytes, limit is {self.max_bytes} bytes",
            limit=self.max_bytes,
        )

    @staticmethod
    def _assign_name(filename: Optional[str]) -> str:
        ext = Path(filename or "").suffix.lower() or DEFAULT_EXTENSION
        return f"{int(time.time() * 1000)}-{uuid4().hex[:8]}{ext}"


def discard(asset: UploadedAsset) -> None:
    """Delete the stored upload; a missing file is fine, other failures are only logged."""
    try:
        asset.path.unlink()
        logger.debug("Deleted transient upload %s", asset.name)
    except FileNotFoundError:
        pass
    except OSError:
        logger.exception("Failed to delete transient upload %s", asset.path)


@contextmanager
def transient(asset: UploadedAsset) -> Iterator[UploadedAsset]:
    try:
        yield asset
    finally:
        discard(asset)
