"""
File-backed, TTL-bounded key/value cache.

Each entry is one JSON file ``<cache_dir>/<key>.json`` holding an envelope::

    {"key": ..., "stored_at": "<ISO-8601>", "payload": {...}}

Entries expire lazily: a read that finds an entry at or past its TTL deletes
the file and reports a miss. Storage failures of any kind are absorbed here
and look like a miss (read) or a no-op (write) to callers.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Type, TypeVar, Union
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from domain.errors import CacheError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)
Clock = Callable[[], datetime]

KEY_LENGTH = 32


def derive_key(*parts: str) -> str:
    """Return a short stable key for the given identifying parts.

    Parts are encoded as a JSON array before hashing, so no choice of part
    contents can make two different tuples collide on the joined string.
    """
    joined = json.dumps([str(part) for part in parts], ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()[:KEY_LENGTH]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileCacheStore:
    """Whole-value JSON cache with read-triggered expiry."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        *,
        ttl: timedelta = timedelta(hours=24),
        clock: Optional[Clock] = None,
    ) -> None:
        if ttl <= timedelta(0):
            raise ValueError("Cache TTL must be positive.")
        self._cache_dir = Path(cache_dir)
        self._ttl = ttl
        self._clock = clock or _utcnow

    @property
    def cache_dir(self) -> Path:
        return self._cache_dir

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    derive_key = staticmethod(derive_key)

    def path_for(self, key: str) -> Path:
        return self._cache_dir / f"{key}.json"

    async def get(self, key: str, model: Type[ModelT]) -> Optional[ModelT]:
        """Return the cached payload for ``key`` as ``model``, or None on a miss."""
        try:
            return await asyncio.to_thread(self._read, key, model)
        except CacheError as exc:
            logger.debug("Cache read for %s treated as miss: %s", key, exc)
            return None

    async def set(self, key: str, value: BaseModel) -> None:
        """Replace the entry stored under ``key`` with ``value``."""
        try:
            await asyncio.to_thread(self._write, key, value)
        except CacheError as exc:
            logger.warning("Cache write for %s skipped: %s", key, exc)

    # ------------------------------------------------------------------
    # Blocking helpers, run off the event loop
    # ------------------------------------------------------------------
    def _read(self, key: str, model: Type[ModelT]) -> Optional[ModelT]:
        path = self.path_for(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheError(str(exc)) from exc

        try:
            envelope: Dict[str, Any] = json.loads(raw.decode("utf-8"))
            stored_at = datetime.fromisoformat(envelope["stored_at"])
            if stored_at.tzinfo is None:
                stored_at = stored_at.replace(tzinfo=timezone.utc)
            payload = envelope["payload"]
        except (ValueError, KeyError, TypeError) as exc:
            self._discard(path)
            raise CacheError(f"corrupt entry {path.name}: {exc}") from exc

        if self._clock() - stored_at >= self._ttl:
            logger.debug("Cache entry %s expired (stored %s); evicting", key, stored_at.isoformat())
            self._discard(path)
            return None

        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            self._discard(path)
            raise CacheError(f"entry {path.name} does not match {model.__name__}") from exc

    def _write(self, key: str, value: BaseModel) -> None:
        envelope = {
            "key": key,
            "stored_at": self._clock().isoformat(),
            "payload": value.model_dump(mode="json"),
        }
        path = self.path_for(key)
        temp = path.with_name(f"{path.name}.{uuid4().hex}.tmp")
        try:
            self._cache_dir.mkdir(parents=True, exist_ok=True)
            temp.write_text(json.dumps(envelope, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(temp, path)
        except OSError as exc:
            self._discard(temp)
            raise CacheError(str(exc)) from exc

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.debug("Unable to remove cache file %s: %s", path, exc)
