"""
records/files.py -- Physical storage for uploaded documents.

Files are written under a single upload directory with a random name; the
client-supplied filename is never used as a path component. The database row
only stores the resulting path, so the two must be created and removed
together by the caller (see api/routes/documents.py).
"""

import logging
import uuid
from pathlib import Path
from typing import Optional

logger = logging.getLogger("officedesk.records")

# Accepted upload content types -> stored file_type / extension
ALLOWED_CONTENT_TYPES = {
    "application/pdf": ("pdf", ".pdf"),
    "image/jpeg": ("jpeg", ".jpg"),
    "image/jpg": ("jpeg", ".jpg"),
    "image/png": ("png", ".png"),
}

MEDIA_TYPES = {"pdf": "application/pdf", "jpeg": "image/jpeg", "png": "image/png"}


def classify_upload(content_type: Optional[str]) -> Optional[tuple[str, str]]:
    """Return (file_type, extension) for an accepted content type, else None."""
    if not content_type:
        return None
    return ALLOWED_CONTENT_TYPES.get(content_type.split(";")[0].strip().lower())


class FileStorage:
    """Writes and removes upload files below root.

    Usage:
        storage = FileStorage(Path("uploads"))
        file_name, path = storage.save(data, ".pdf")
        storage.delete(path)
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, data: bytes, extension: str) -> tuple[str, str]:
        """Write data to a fresh file. Returns (stored file name, absolute path)."""
        file_name = f"{uuid.uuid4().hex}{extension}"
        path = self.root / file_name
        path.write_bytes(data)
        logger.info("Stored upload %s (%d bytes)", file_name, len(data))
        return file_name, str(path.resolve())

    def delete(self, path: str) -> bool:
        """Remove a stored file. Missing files are not an error; returns False."""
        target = Path(path)
        if not self._is_inside_root(target):
            logger.warning("Refusing to delete file outside upload dir: %s", path)
            return False
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        return True

    def exists(self, path: str) -> bool:
        target = Path(path)
        return self._is_inside_root(target) and target.is_file()

    def _is_inside_root(self, target: Path) -> bool:
        try:
            target.resolve().relative_to(self.root.resolve())
        except ValueError:
            return False
        return True
