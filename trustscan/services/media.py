"""User media stored in the uploads directory.

Media references are file names relative to the uploads directory, absolute
paths or ``file://`` URIs. Whatever form they take, they must resolve to a
file inside the uploads directory; anything else is refused before the file
system is touched for reading.
"""

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path
from urllib.parse import unquote, urlparse
from uuid import uuid4

import aiofiles

logger = logging.getLogger(__name__)

ALLOWED_SUFFIXES = (".png", ".jpg", ".jpeg", ".webp", ".gif", ".heic")


class MediaAccessError(ValueError):
    """A media reference points outside the uploads directory."""


class MediaLibrary:
    """Reads and stores user media confined to one directory."""

    def __init__(self, uploads_path: Path | str):
        self.uploads_path = Path(uploads_path)

    def resolve(self, media_reference: str) -> Path:
        """Map a reference to a path inside the uploads directory.

        Raises:
            MediaAccessError: The reference escapes the uploads directory.
        """
        path_text = media_reference
        if media_reference.startswith("file://"):
            path_text = unquote(urlparse(media_reference).path)

        root = self.uploads_path.resolve()
        candidate = Path(path_text)
        if not candidate.is_absolute():
            candidate = root / candidate
        resolved = candidate.resolve()

        if resolved == root or not resolved.is_relative_to(root):
            raise MediaAccessError(f"Media reference outside uploads directory: {media_reference}")
        return resolved

    async def check(self, media_reference: str) -> None:
        """Validate a reference without reading it. Data URIs are always accepted."""
        if media_reference.startswith("data:"):
            return
        await asyncio.to_thread(self.resolve, media_reference)

    async def read(self, media_reference: str) -> tuple[str, bytes] | None:
        """Load a stored file as ``(file name, content)``, or None if unavailable."""
        try:
            path = await asyncio.to_thread(self.resolve, media_reference)
        except MediaAccessError as e:
            logger.warning(str(e))
            return None
        except (OSError, RuntimeError) as e:
            logger.info(f"Could not resolve media {media_reference}: {e}")
            return None

        if not await asyncio.to_thread(path.is_file):
            logger.info(f"Media not found: {media_reference}")
            return None

        try:
            async with aiofiles.open(path, "rb") as f:
                payload = await f.read()
        except OSError as e:
            logger.info(f"Could not read media {media_reference}: {e}")
            return None
        return path.name, payload

    async def read_data_uri(self, media_reference: str) -> str | None:
        """Load media as a ``data:`` URI. Existing data URIs pass through."""
        if media_reference.startswith("data:"):
            return media_reference

        loaded = await self.read(media_reference)
        if loaded is None:
            return None

        name, payload = loaded
        mime_type = mimetypes.guess_type(name)[0] or "image/jpeg"
        encoded = base64.b64encode(payload).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    async def save(self, filename: str, content: bytes) -> str:
        """Store uploaded content under a fresh name and return its reference."""
        suffix = Path(filename).suffix.lower()
        if suffix not in ALLOWED_SUFFIXES:
            raise MediaAccessError(f"Unsupported media type: {suffix or filename}")

        name = f"{uuid4().hex}{suffix}"
        await asyncio.to_thread(self.uploads_path.mkdir, parents=True, exist_ok=True)
        async with aiofiles.open(self.uploads_path / name, "wb") as f:
            await f.write(content)

        logger.info(f"Stored uploaded media {name} ({len(content)} bytes)")
        return name
