from __future__ import annotations

import logging
import os
import secrets
import time
from pathlib import Path
from typing import Optional

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from ..core.constants import DEFAULT_MAX_UPLOAD_BYTES
from ..core.exceptions import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIMES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}
ALLOWED_EXTS = {".jpg", ".jpeg", ".png", ".webp"}
PUBLIC_PREFIX = "/uploads"


class LocalFileStorage:
    """Pass-through disk storage for selfies and profile images.

    Returns a stable public reference; file bytes are never inspected.
    """

    def __init__(self, upload_dir: str | Path, *, max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES):
        self._dir = Path(upload_dir).resolve()
        self._max_bytes = int(max_bytes)

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @staticmethod
    def is_allowed(file: FileStorage) -> bool:
        mimetype = (file.mimetype or "").lower()
        ext = os.path.splitext(file.filename or "")[1].lower()
        if mimetype in ALLOWED_MIMES:
            return True
        # Some clients send octet-stream or nothing; fall back to the extension.
        return mimetype in ("", "application/octet-stream") and ext in ALLOWED_EXTS

    def save(self, file: Optional[FileStorage], *, prefix: str = "selfie", field: str = "photo") -> str:
        if file is None or not file.filename:
            raise ValidationError("Photo is required", {field: "Selfie photo is required"})
        if not self.is_allowed(file):
            message = "Invalid file type. Only JPEG, PNG, and WebP images are allowed."
            raise ValidationError(message, {field: message})

        ext = os.path.splitext(secure_filename(file.filename))[1].lower()
        name = f"{prefix}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{ext}"

        self._dir.mkdir(parents=True, exist_ok=True)
        target = self._dir / name
        file.save(target)

        if target.stat().st_size > self._max_bytes:
            target.unlink(missing_ok=True)
            message = f"File size too large. Maximum size is {self._max_bytes // (1024 * 1024)}MB."
            raise ValidationError(message, {field: message})

        logger.debug("Stored upload %s", name)
        return f"{PUBLIC_PREFIX}/{name}"

    def delete(self, reference: str) -> None:
        """Remove a file previously returned by save(); unknown references are ignored."""

        name = secure_filename(reference.rsplit("/", 1)[-1])
        if name:
            (self._dir / name).unlink(missing_ok=True)
            logger.debug("Removed upload %s", name)
