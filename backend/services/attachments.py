"""Upload handling: validate, persist to the upload dir, convert to Parts."""
from __future__ import annotations

import base64
import logging
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Optional

from backend.core.session_store import Part

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpeg", ".jpg", ".png", ".gif", ".webp", ".pdf", ".doc", ".docx", ".txt"}
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
MIME_BY_EXTENSION = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".pdf": "application/pdf",
}


@dataclass
class StoredUpload:
    path: Path
    original_name: str
    content_type: Optional[str] = None

    @property
    def suffix(self) -> str:
        return self.path.suffix.lower()


def is_allowed(filename: str, content_type: Optional[str]) -> bool:
    """Accept when either the media type or the extension is on the list."""
    ext = Path(filename or "").suffix.lower()
    ctype = (content_type or "").lower()
    return ext in ALLOWED_EXTENSIONS or ctype.startswith("image/") or ctype in ALLOWED_MIME_TYPES


def mime_type_for(path: Path) -> str:
    return MIME_BY_EXTENSION.get(path.suffix.lower(), "application/octet-stream")


def _unique_name(filename: str) -> str:
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{Path(filename).suffix.lower()}"


def save_upload(
    upload_dir: Path,
    filename: str,
    content_type: Optional[str],
    stream: BinaryIO,
    max_bytes: int,
) -> StoredUpload:
    if not is_allowed(filename, content_type):
        raise ValueError("Only image, PDF, and document files are allowed!")
    data = stream.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ValueError(f"File '{filename}' exceeds the {max_bytes // (1024 * 1024)}MB limit.")
    upload_dir.mkdir(parents=True, exist_ok=True)
    dest = upload_dir / _unique_name(filename)
    dest.write_bytes(data)
    return StoredUpload(path=dest, original_name=filename, content_type=content_type)


def to_part(upload: StoredUpload) -> Part:
    if upload.suffix in IMAGE_EXTENSIONS or upload.suffix == ".pdf":
        encoded = base64.b64encode(upload.path.read_bytes()).decode("ascii")
        return Part.inline(encoded, mime_type_for(upload.path))
    try:
        content = upload.path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return Part.from_text(f"\n[File: {upload.original_name} - could not read]")
    return Part.from_text(f"\n[File: {upload.original_name}]\n{content}")


def cleanup(uploads: Iterable[StoredUpload]) -> None:
    for upload in uploads:
        try:
            upload.path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Failed to remove upload %s: %s", upload.path, exc)


__all__ = ["StoredUpload", "cleanup", "is_allowed", "save_upload", "to_part"]
