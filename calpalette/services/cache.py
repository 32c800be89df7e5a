"""
calpalette Result Cache
Persists dominant color results per source image and invalidates them by
modification time. Records live in sidecar files next to the photo (or under
an explicit cache root), or in Redis.
"""
import hashlib
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

import redis
from loguru import logger
from pydantic import ValidationError

from calpalette.config import config
from calpalette.errors import CacheCorruptError, CachePersistError, SourceUnavailableError
from calpalette.schemas import CacheRecord

PathLike = Union[str, Path]


@dataclass(frozen=True)
class StoredRecord:
    """A cache record and the time its storage artifact was last modified."""
    record: CacheRecord
    modified_ns: int


class RecordStore(ABC):
    """Abstract base class for cache record backends."""

    @abstractmethod
    def load(self, key: str) -> Optional[StoredRecord]:
        """Load a record, None if absent. Raises CacheCorruptError if unreadable."""
        pass

    @abstractmethod
    def save(self, key: str, record: CacheRecord) -> None:
        """Persist a record atomically. Raises CachePersistError on failure."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete a record."""
        pass


class SidecarFileStore(RecordStore):
    """
    One JSON record file per source image.

    Without a cache root the record sits next to the source with its
    extension replaced; with a cache root all records share that directory,
    disambiguated by a hash of the source path.
    """

    def __init__(self, cache_root: Optional[PathLike] = None, extension: Optional[str] = None):
        self.cache_root = Path(cache_root) if cache_root else None
        self.extension = extension or config.CACHE_EXTENSION

    def path_for(self, key: str) -> Path:
        """Record file location for a cache key (the source path)."""
        source = Path(key)
        if self.cache_root is None:
            return source.with_suffix(self.extension)

        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:12]
        return self.cache_root / f"{source.stem}-{digest}{self.extension}"

    def load(self, key: str) -> Optional[StoredRecord]:
        path = self.path_for(key)
        try:
            modified_ns = path.stat().st_mtime_ns
            payload = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheCorruptError(f"Unreadable cache file {path}: {e}", source=key) from e

        try:
            record = CacheRecord.model_validate_json(payload)
        except (ValidationError, ValueError) as e:
            raise CacheCorruptError(f"Invalid cache file {path}: {e}", source=key) from e

        return StoredRecord(record=record, modified_ns=modified_ns)

    def save(self, key: str, record: CacheRecord) -> None:
        path = self.path_for(key)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            with os.fdopen(fd, "wb") as handle:
                handle.write(record.model_dump_json().encode("utf-8"))
                handle.flush()
                os.fsync(handle.fileno())
            # Readers see either the old record or the complete new one
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            raise CachePersistError(f"Failed to write cache file {path}: {e}", source=key) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug(f"Could not remove temporary cache file {tmp_name}")

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False


class RedisRecordStore(RecordStore):
    """Redis cache backend; the record's creation time stands in for file mtime."""

    def __init__(self, redis_url: Optional[str] = None, client=None, prefix: Optional[str] = None):
        if client is None:
            redis_url = redis_url or config.REDIS_URL or "redis://localhost:6379"
            client = redis.from_url(redis_url, decode_responses=True)
        self.redis_client = client
        self.prefix = config.REDIS_PREFIX if prefix is None else prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def load(self, key: str) -> Optional[StoredRecord]:
        try:
            value = self.redis_client.get(self._key(key))
        except redis.RedisError as e:
            raise CacheCorruptError(f"Redis get failed: {e}", source=key) from e

        if value is None:
            return None

        try:
            record = CacheRecord.model_validate_json(value)
        except (ValidationError, ValueError) as e:
            raise CacheCorruptError(f"Invalid cache value: {e}", source=key) from e

        return StoredRecord(record=record, modified_ns=record.created_at_ns)

    def save(self, key: str, record: CacheRecord) -> None:
        try:
            self.redis_client.set(self._key(key), record.model_dump_json())
        except redis.RedisError as e:
            raise CachePersistError(f"Redis set failed: {e}", source=key) from e

    def delete(self, key: str) -> bool:
        try:
            return bool(self.redis_client.delete(self._key(key)))
        except redis.RedisError as e:
            logger.error(f"Redis delete failed for key {key}: {e}")
            return False


class NullRecordStore(RecordStore):
    """Store that never holds anything; every lookup recomputes."""

    def load(self, key: str) -> Optional[StoredRecord]:
        return None

    def save(self, key: str, record: CacheRecord) -> None:
        pass

    def delete(self, key: str) -> bool:
        return False


def default_key(source_path: PathLike) -> str:
    """Cache key for a source image: its absolute path."""
    return os.path.abspath(os.fspath(source_path))


def build_store_from_config(backend: Optional[str] = None,
                            cache_root: Optional[PathLike] = None) -> RecordStore:
    """Create the record store selected by configuration."""
    backend = backend or config.CACHE_BACKEND
    if not config.validate_cache_backend(backend):
        raise ValueError(f"Unknown cache backend '{backend}'")

    if backend == "redis":
        return RedisRecordStore(config.REDIS_URL)
    if backend == "none":
        return NullRecordStore()
    return SidecarFileStore(cache_root or config.CACHE_ROOT)


class ResultCache:
    """mtime-validated cache of dominant color lists."""

    def __init__(self,
                 store: Optional[RecordStore] = None,
                 key_fn: Optional[Callable[[PathLike], str]] = None,
                 color_count: Optional[int] = None,
                 algorithm: Optional[str] = None):
        self.store = store if store is not None else build_store_from_config()
        self.key_fn = key_fn or default_key
        self.color_count = color_count or config.COLOR_COUNT
        self.algorithm = algorithm or config.algorithm_signature()

        self.stats: Dict[str, int] = {
            'hits': 0, 'misses': 0, 'stale': 0, 'corrupt': 0, 'persist_failures': 0
        }

    @staticmethod
    def _source_mtime_ns(source: Path) -> int:
        try:
            stat_result = source.stat()
        except FileNotFoundError as e:
            raise SourceUnavailableError("Source image not found", source=source) from e
        except OSError as e:
            raise SourceUnavailableError(f"Cannot stat source image: {e}", source=source) from e

        if not source.is_file():
            raise SourceUnavailableError("Source is not a regular file", source=source)

        return stat_result.st_mtime_ns

    def _is_valid(self, stored: StoredRecord, key: str, source_mtime_ns: int) -> bool:
        record = stored.record
        return (
            stored.modified_ns >= source_mtime_ns
            and record.source_mtime_ns >= source_mtime_ns
            and record.source_path == key
            and record.color_count == self.color_count
            and record.algorithm == self.algorithm
        )

    def lookup(self, source_path: PathLike) -> Optional[List[str]]:
        """Return the cached colors for a source image, or None if absent or stale."""
        source = Path(source_path)
        source_mtime_ns = self._source_mtime_ns(source)
        return self._lookup(self.key_fn(source), source_mtime_ns)

    def _lookup(self, key: str, source_mtime_ns: int) -> Optional[List[str]]:
        try:
            stored = self.store.load(key)
        except CacheCorruptError as e:
            self.stats['corrupt'] += 1
            logger.warning(f"Ignoring corrupt cache record: {e}")
            return None

        if stored is None:
            return None

        if not self._is_valid(stored, key, source_mtime_ns):
            self.stats['stale'] += 1
            logger.debug(f"Cache record for {key} is stale")
            return None

        return list(stored.record.colors)

    def lookup_or_compute(self, source_path: PathLike,
                          compute_fn: Callable[[], Sequence[str]]) -> List[str]:
        """
        Return cached colors for the source image, computing and storing them on a miss.

        Args:
            source_path: Source image path
            compute_fn: Produces the color list when no valid record exists

        Returns:
            Ordered list of lowercase hex colors

        Raises:
            SourceUnavailableError: If the source image is missing
        """
        source = Path(source_path)
        source_mtime_ns = self._source_mtime_ns(source)
        key = self.key_fn(source)

        cached = self._lookup(key, source_mtime_ns)
        if cached is not None:
            self.stats['hits'] += 1
            logger.debug(f"Cache hit for {key}")
            return cached

        self.stats['misses'] += 1
        colors = list(compute_fn())

        try:
            record = CacheRecord.create(
                source_path=key,
                source_mtime_ns=source_mtime_ns,
                color_count=self.color_count,
                algorithm=self.algorithm,
                colors=colors,
            )
            self.store.save(key, record)
        except ValidationError as e:
            self.stats['persist_failures'] += 1
            logger.warning(f"Cache write skipped, result does not fit a cache record: {e}")
        except CachePersistError as e:
            self.stats['persist_failures'] += 1
            logger.warning(f"Cache write skipped: {e}")

        return colors

    def invalidate(self, source_path: PathLike) -> bool:
        """Drop the cached record for a source image."""
        return self.store.delete(self.key_fn(source_path))

    def get_cache_stats(self) -> Dict[str, object]:
        """Get cache statistics."""
        total = self.stats['hits'] + self.stats['misses']
        return {
            'stats': self.stats.copy(),
            'hit_rate': self.stats['hits'] / total if total > 0 else 0.0,
            'total_requests': total
        }
