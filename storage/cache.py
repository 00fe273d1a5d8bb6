"""
Cache
TTL key-value caches for search results and video metadata, plus best-effort async writes
"""
from abc import ABC, abstractmethod
from typing import Any, Optional, Dict, Set
from pathlib import Path
from datetime import datetime, timedelta
import asyncio
import json
import hashlib
import logging
import threading


logger = logging.getLogger(__name__)


class BaseCache(ABC):
    """
    Key-value store with per-entry TTL.

    Entries are immutable once written; a second write for the same key is an
    idempotent overwrite.
    """

    def __init__(self, ttl: Optional[int] = None):
        """
        Args:
            ttl: default time-to-live in seconds, None = never expires
        """
        self.ttl = ttl

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    @staticmethod
    def make_key(*args, **kwargs) -> str:
        """Stable md5 key from positional and keyword parts."""
        key_parts = [str(arg) for arg in args]
        key_parts.extend([f"{k}={v}" for k, v in sorted(kwargs.items())])
        key_string = ":".join(key_parts)
        return hashlib.md5(key_string.encode()).hexdigest()


class MemoryCache(BaseCache):
    """
    In-process dictionary cache, used by default and in tests.
    """

    def __init__(self, ttl: Optional[int] = None, max_size: int = 5000):
        super().__init__(ttl)
        self.max_size = max_size
        self._cache: Dict[str, Dict] = {}
        self._lock = threading.Lock()

    def _is_expired(self, entry: Dict) -> bool:
        if entry.get("expires_at") is None:
            return False
        return datetime.now() > entry["expires_at"]

    def _cleanup(self):
        expired_keys = [k for k, v in self._cache.items() if self._is_expired(v)]
        for key in expired_keys:
            del self._cache[key]

        # still over the limit: evict the oldest entries
        if len(self._cache) >= self.max_size:
            sorted_keys = sorted(
                self._cache.keys(),
                key=lambda k: self._cache[k].get("created_at", datetime.min),
            )
            for key in sorted_keys[:len(self._cache) - self.max_size + 1]:
                del self._cache[key]

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if self._is_expired(entry):
                del self._cache[key]
                return None
            return entry["value"]

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = ttl or self.ttl
        expires_at = datetime.now() + timedelta(seconds=ttl) if ttl else None
        with self._lock:
            self._cleanup()
            self._cache[key] = {
                "value": value,
                "created_at": datetime.now(),
                "expires_at": expires_at,
            }

    def delete(self, key: str) -> None:
        with self._lock:
            self._cache.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def size(self) -> int:
        return len(self._cache)


class DiskCache(BaseCache):
    """
    JSON-file cache persisted across runs, one file per key plus a _meta.json index.
    """

    def __init__(self, cache_dir: str = "./data/cache", ttl: Optional[int] = None):
        super().__init__(ttl)
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.meta_file = self.cache_dir / "_meta.json"
        self._lock = threading.Lock()
        self._load_meta()

    def _load_meta(self):
        if not self.meta_file.exists():
            self._meta = {}
            return
        try:
            with open(self.meta_file, "r", encoding="utf-8") as f:
                self._meta = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("cache_meta_unreadable path=%s error=%s", self.meta_file, e)
            self._meta = {}

    def _save_meta(self):
        with open(self.meta_file, "w", encoding="utf-8") as f:
            json.dump(self._meta, f)

    def _get_path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def _is_expired(self, key: str) -> bool:
        expires_at = self._meta.get(key, {}).get("expires_at")
        if expires_at is None:
            return False
        return datetime.now().timestamp() > expires_at

    def get(self, key: str) -> Optional[Any]:
        path = self._get_path(key)
        if not path.exists():
            return None
        if self._is_expired(key):
            self.delete(key)
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("cache_entry_unreadable key=%s error=%s", key, e)
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        ttl = ttl or self.ttl
        expires_at = (datetime.now() + timedelta(seconds=ttl)).timestamp() if ttl else None
        with self._lock:
            with open(self._get_path(key), "w", encoding="utf-8") as f:
                json.dump(value, f, ensure_ascii=False, default=str)
            self._meta[key] = {
                "created_at": datetime.now().timestamp(),
                "expires_at": expires_at,
            }
            self._save_meta()

    def delete(self, key: str) -> None:
        with self._lock:
            path = self._get_path(key)
            if path.exists():
                path.unlink()
            self._meta.pop(key, None)
            self._save_meta()

    def clear(self) -> None:
        import shutil
        with self._lock:
            shutil.rmtree(self.cache_dir)
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self._meta = {}
            self._save_meta()

    def size(self) -> int:
        return len(self._meta)


class BestEffortWriter:
    """
    Fire-and-forget cache writes.

    `submit` schedules the write as a detached task and returns immediately; a
    failed write is logged and never propagated to the caller. `drain` awaits
    whatever is still pending (shutdown, tests).
    """

    def __init__(self, cache: BaseCache):
        self.cache = cache
        self._pending: Set[asyncio.Task] = set()
        self.failures = 0

    async def _write(self, key: str, value: Any, ttl: Optional[int]) -> None:
        try:
            await asyncio.to_thread(self.cache.set, key, value, ttl)
        except Exception as e:
            self.failures += 1
            logger.warning("cache_write_failed key=%s error=%s", key, e)

    def submit(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        task = asyncio.get_running_loop().create_task(self._write(key, value, ttl))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


def safe_get(cache: BaseCache, key: str) -> Optional[Any]:
    """Cache read that treats backend errors as a miss."""
    try:
        return cache.get(key)
    except Exception as e:
        logger.warning("cache_read_failed key=%s error=%s", key, e)
        return None


def get_cache(
    provider: str = "memory",
    cache_dir: str = "./data/cache",
    ttl: Optional[int] = None,
    **kwargs,
) -> BaseCache:
    """
    Build a cache backend.

    Args:
        provider: memory or disk
        cache_dir: disk cache directory
        ttl: default TTL in seconds

    Returns:
        A new cache instance
    """
    if provider == "memory":
        return MemoryCache(ttl=ttl, **kwargs)
    if provider == "disk":
        return DiskCache(cache_dir=cache_dir, ttl=ttl)
    raise ValueError(f"Unknown cache provider: {provider}")
