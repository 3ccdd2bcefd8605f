"""Local filesystem blob store for scan photos."""

from __future__ import annotations

import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)


class LocalStorage:
    """Stores blobs under ``root`` and serves them below ``base_url``."""

    def __init__(self, root: str | Path, base_url: str = "/uploads"):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    async def put(
        self,
        data: bytes,
        *,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> str:
        """Persist an uploaded image asynchronously and return its public URL."""
        suffix = Path(filename or "").suffix.lower()
        if not suffix and content_type:
            suffix = mimetypes.guess_extension(content_type) or ""
        name = f"{uuid.uuid4().hex}{suffix or '.jpg'}"

        self.root.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.root / name, "wb") as out_file:
            await out_file.write(data)
        logger.debug("Stored upload at %s", self.root / name)
        return f"{self.base_url}/{name}"

    async def delete(self, url: str) -> bool:
        prefix = f"{self.base_url}/"
        if not url or not url.startswith(prefix):
            return False
        name = url[len(prefix):]
        if not name or "/" in name or name.startswith("."):
            return False
        try:
            await aiofiles.os.remove(self.root / name)
        except FileNotFoundError:
            return False
        logger.debug("Deleted upload %s", name)
        return True


__all__ = ["LocalStorage"]
