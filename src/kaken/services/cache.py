"""Content-addressed, file-backed cache of raw API responses."""

from __future__ import annotations

import asyncio
import hashlib
from pathlib import Path
from uuid import uuid4

import structlog

logger = structlog.get_logger(__name__)


class ResponseCache:
    """Stores response bodies on disk, one file per request URL.

    Files are named after the MD5 digest of the URL with a ``.cache`` suffix.
    A disabled cache never touches the filesystem.
    """

    suffix = ".cache"

    def __init__(self, cache_dir: Path | None, enabled: bool = True) -> None:
        self._cache_dir = Path(cache_dir) if cache_dir is not None else None
        self._enabled = enabled and self._cache_dir is not None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def cache_dir(self) -> Path | None:
        return self._cache_dir

    @staticmethod
    def cache_key(url: str) -> str:
        return hashlib.md5(url.encode("utf-8")).hexdigest()

    def path_for(self, url: str) -> Path:
        if self._cache_dir is None:
            raise ValueError("Cache directory is not configured.")
        return self._cache_dir / f"{self.cache_key(url)}{self.suffix}"

    async def get(self, url: str) -> bytes | None:
        if not self._enabled:
            return None
        return await asyncio.to_thread(self._read_sync, self.path_for(url))

    async def set(self, url: str, content: bytes | str) -> None:
        if not self._enabled:
            return
        payload = content.encode("utf-8") if isinstance(content, str) else content
        await asyncio.to_thread(self._write_sync, self.path_for(url), payload)

    async def clear(self) -> None:
        if not self._enabled:
            return
        await asyncio.to_thread(self._clear_sync)

    # Internal helpers -----------------------------------------------------

    def _read_sync(self, path: Path) -> bytes | None:
        try:
            return path.read_bytes()
        except OSError:
            return None

    def _write_sync(self, path: Path, payload: bytes) -> None:
        temp_path = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_bytes(payload)
            temp_path.replace(path)
        except OSError as exc:
            logger.warning("cache.write_failed", path=str(path), error=str(exc))
            temp_path.unlink(missing_ok=True)
            return
        logger.debug("cache.write", path=str(path), size=len(payload))

    def _clear_sync(self) -> None:
        if self._cache_dir is None or not self._cache_dir.is_dir():
            return
        removed = 0
        try:
            for entry in self._cache_dir.glob(f"*{self.suffix}"):
                entry.unlink(missing_ok=True)
                removed += 1
        except OSError as exc:
            logger.warning("cache.clear_failed", cache_dir=str(self._cache_dir), error=str(exc))
            return
        logger.info("cache.cleared", cache_dir=str(self._cache_dir), removed=removed)
