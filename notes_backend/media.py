"""Media sideload: uploaded files are stored outside the database and only a reference is kept."""
import logging
import os
import secrets
import shutil
from pathlib import Path
from typing import Iterable, Optional, Protocol

from fastapi import UploadFile

from notes_backend import config
from notes_backend.errors import StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)


class MediaStore(Protocol):
    def save(self, upload: UploadFile) -> str:
        ...

    def delete(self, ref: str) -> None:
        ...


class LocalMediaStore:
    """Writes uploads to a directory served under url_prefix."""

    def __init__(self, directory: Path, url_prefix: str = config.MEDIA_URL_PREFIX,
                 allowed_extensions: Iterable[str] = config.ALLOWED_MEDIA_EXTENSIONS):
        self.directory = Path(directory)
        self.url_prefix = url_prefix.rstrip("/")
        self.allowed_extensions = {ext.lower() for ext in allowed_extensions}

    def _extension(self, filename: str) -> str:
        _, ext = os.path.splitext(filename)
        ext = ext.lstrip(".").lower()
        if ext not in self.allowed_extensions:
            raise ValidationError(f"Unsupported media type: {ext or 'none'}")
        return ext

    def save(self, upload: UploadFile) -> str:
        ext = self._extension(upload.filename or "")
        stored_name = f"{secrets.token_urlsafe(16)}.{ext}"
        target_path = self.directory / stored_name
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(target_path, "wb") as target:
                shutil.copyfileobj(upload.file, target)
        except OSError as exc:
            logger.exception("Failed to store upload %s", upload.filename)
            raise StoreUnavailable("Could not store media") from exc
        finally:
            upload.file.close()
        return f"{self.url_prefix}/{stored_name}"

    def delete(self, ref: str) -> None:
        """Remove a stored file by its reference. Unknown references are ignored."""
        prefix = self.url_prefix + "/"
        if not ref or not ref.startswith(prefix):
            return
        name = ref[len(prefix):]
        if not name or "/" in name or name.startswith("."):
            return
        try:
            (self.directory / name).unlink(missing_ok=True)
        except OSError:
            logger.warning("Failed to remove media file: %s", name)


def has_file(upload: Optional[UploadFile]) -> bool:
    """Browsers submit an empty part when the file input is left blank."""
    return upload is not None and bool(upload.filename)
