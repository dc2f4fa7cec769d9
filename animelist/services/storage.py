from __future__ import annotations

import logging
import secrets
import time
from pathlib import Path
from typing import BinaryIO, Protocol

from animelist.core.config import settings
from animelist.core.errors import IOFailure, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = frozenset({".jpeg", ".jpg", ".png", ".gif", ".webp"})
ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"})
_CHUNK_SIZE = 64 * 1024


class Upload(Protocol):
    """The parts of ``fastapi.UploadFile`` the storage relies on."""

    filename: str | None
    content_type: str | None
    file: BinaryIO


class AssetStorage:
    """Stores cover images in one directory under generated filenames."""

    def __init__(self, directory: Path, max_bytes: int = 5 * 1024 * 1024) -> None:
        self.directory = Path(directory)
        self.max_bytes = max_bytes

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        if not filename or Path(filename).name != filename or filename in {".", ".."}:
            raise ValueError(f"Invalid asset reference: {filename!r}")
        return self.directory / filename

    def save(self, upload: Upload | None) -> str | None:
        """Persist ``upload`` and return its stored filename.

        Returns ``None`` when the form carried no file.
        """

        if upload is None or not upload.filename:
            return None

        extension = Path(upload.filename).suffix.lower()
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        if extension not in ALLOWED_EXTENSIONS or content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError("Only JPEG, PNG, GIF or WEBP images are allowed")

        self.ensure_directory()
        filename = f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{extension}"
        target = self.path_for(filename)

        written = 0
        try:
            with target.open("xb") as handle:
                while True:
                    chunk = upload.file.read(_CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > self.max_bytes:
                        raise ValidationError(
                            f"Image must be {self.max_bytes // (1024 * 1024)} MB or smaller"
                        )
                    handle.write(chunk)
        except ValidationError:
            target.unlink(missing_ok=True)
            raise
        except OSError as exc:
            target.unlink(missing_ok=True)
            logger.exception("Failed to store upload %s", filename)
            raise IOFailure() from exc

        logger.info("Stored upload %s (%d bytes)", filename, written)
        return filename

    def release(self, filename: str) -> bool:
        """Delete a stored asset, logging instead of raising on failure."""

        try:
            self.path_for(filename).unlink()
        except FileNotFoundError:
            logger.warning("Asset %s was already missing", filename)
            return False
        except (OSError, ValueError) as exc:
            logger.warning("Could not release asset %s: %s", filename, exc)
            return False

        logger.info("Released asset %s", filename)
        return True


def get_storage() -> AssetStorage:
    return AssetStorage(settings.upload_directory, max_bytes=settings.max_upload_bytes)


__all__ = ["AssetStorage", "Upload", "get_storage", "ALLOWED_EXTENSIONS", "ALLOWED_CONTENT_TYPES"]
