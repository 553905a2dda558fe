"""
Two-tier cache for external data.

Reads hit an in-process dict first and fall back to the external_data_cache
table; a persistent hit is copied back into memory. Every public method
catches its own errors and degrades to a miss, so callers never see a cache
failure.

The in-process tier evicts by insertion order (FIFO) when it is full. Access
order is not tracked.
"""
import asyncio
import json
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

from sqlalchemy import delete as sql_delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..models import CacheRecord
from ..schemas.external_data import CacheEntry, CacheStats

logger = logging.getLogger(__name__)

MAX_KEY_LENGTH = 500
_KEY_INVALID_CHARS = re.compile(r"[/\s]")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CacheService:
    def __init__(
        self,
        session_maker: async_sessionmaker,
        memory_max_entries: int = 100,
        max_size_mb: int = 10,
        default_ttl: int = 3600,
        cleanup_interval: int = 3600,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session_maker = session_maker
        self._memory: Dict[str, CacheEntry] = {}
        self.memory_max_entries = memory_max_entries
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.default_ttl = default_ttl
        self.cleanup_interval = cleanup_interval
        self._clock = clock or utc_now
        self._cleanup_task: Optional[asyncio.Task] = None
        logger.info("[CACHE] Cache service initialized")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Optional[Any]:
        """Return cached data for ``key`` or None on miss/expiry/error."""
        try:
            now = self._clock()

            entry = self._memory.get(key)
            if entry is not None:
                if now < entry.expires_at:
                    entry.hits += 1
                    logger.info(f"[CACHE] Memory hit: {key}")
                    return entry.data
                logger.info(f"[CACHE] Expired in memory: {key}")
                await self.delete(key)
                return None

            async with self._session_maker() as session:
                record = await session.get(CacheRecord, self.sanitize_key(key))
                if record is None or record.key != key:
                    logger.info(f"[CACHE] Miss: {key}")
                    return None

                expires_at = _as_utc(record.expires_at)
                if now >= expires_at:
                    logger.info(f"[CACHE] Expired: {key}")
                    await session.delete(record)
                    await session.commit()
                    return None

                record.hits = (record.hits or 0) + 1
                await session.commit()

                entry = CacheEntry(
                    key=record.key,
                    data=record.data,
                    created_at=_as_utc(record.created_at),
                    expires_at=expires_at,
                    source=record.source,
                    hits=record.hits,
                )

            logger.info(f"[CACHE] Persistent hit: {key}")
            self._set_memory(key, entry)
            return entry.data

        except Exception as e:
            logger.error(f"[CACHE] Get failed for {key}: {e}")
            return None

    async def set(self, key: str, data: Any, ttl_seconds: Optional[int] = None) -> None:
        """Store JSON-serializable ``data`` in both tiers."""
        try:
            ttl = ttl_seconds or self.default_ttl
            serialized = json.dumps(data)
            size = len(serialized.encode("utf-8"))
            if size > self.max_size_bytes:
                logger.warning(
                    f"[CACHE] Data too large to cache: {key} "
                    f"({size / (1024 * 1024):.2f} MB)"
                )
                return

            now = self._clock()
            entry = CacheEntry(
                key=key,
                # Keep the JSON round-tripped form so both tiers hold the same value
                data=json.loads(serialized),
                created_at=now,
                expires_at=now + timedelta(seconds=ttl),
                source="external_data",
                hits=0,
            )

            async with self._session_maker() as session:
                doc_id = self.sanitize_key(key)
                record = await session.get(CacheRecord, doc_id)
                if record is None:
                    record = CacheRecord(doc_id=doc_id)
                    session.add(record)
                record.key = key
                record.data = entry.data
                record.source = entry.source
                record.hits = 0
                record.created_at = entry.created_at
                record.expires_at = entry.expires_at
                await session.commit()

            self._set_memory(key, entry)
            logger.info(f"[CACHE] Cached {key} (ttl={ttl}s)")

        except Exception as e:
            logger.error(f"[CACHE] Set failed for {key}: {e}")

    async def delete(self, key: str) -> None:
        try:
            self._memory.pop(key, None)
            async with self._session_maker() as session:
                await session.execute(
                    sql_delete(CacheRecord).where(CacheRecord.doc_id == self.sanitize_key(key))
                )
                await session.commit()
            logger.info(f"[CACHE] Deleted {key}")
        except Exception as e:
            logger.error(f"[CACHE] Delete failed for {key}: {e}")

    async def invalidate(self, pattern: str) -> int:
        """
        Drop entries matching ``pattern``: memory keys containing it and
        persistent keys starting with it. Returns persistent rows deleted.
        """
        try:
            for key in [k for k in self._memory if pattern in k]:
                del self._memory[key]
            deleted = await self._delete_prefix(pattern)
            logger.info(f"[CACHE] Invalidated '{pattern}': {deleted} persistent entries")
            return deleted
        except Exception as e:
            logger.error(f"[CACHE] Invalidate failed for '{pattern}': {e}")
            return 0

    async def clear_user_cache(self, user_id: str) -> int:
        """Remove every orchestration result cached for ``user_id``."""
        prefix = f"external_data:{user_id}:"
        try:
            for key in [k for k in self._memory if k.startswith(prefix)]:
                del self._memory[key]
            deleted = await self._delete_prefix(prefix)
            logger.info(f"[CACHE] Cleared cache for user {user_id}: {deleted} entries")
            return deleted
        except Exception as e:
            logger.error(f"[CACHE] Clear user cache failed for {user_id}: {e}")
            return 0

    async def get_stats(self) -> CacheStats:
        try:
            async with self._session_maker() as session:
                result = await session.execute(select(CacheRecord.hits))
                hits = [row or 0 for row in result.scalars().all()]

            total_hits = sum(hits)
            # Each persisted entry started with one miss
            total_requests = total_hits + len(hits)

            return CacheStats(
                memory_entries=len(self._memory),
                persistent_entries=len(hits),
                total_size=self._memory_size(),
                hit_rate=total_hits / total_requests if total_requests else 0,
            )
        except Exception as e:
            logger.error(f"[CACHE] Stats failed: {e}")
            return CacheStats()

    async def cleanup_expired(self) -> int:
        """Purge expired entries from both tiers. Returns persistent rows deleted."""
        try:
            now = self._clock()
            for key in [k for k, e in self._memory.items() if now >= e.expires_at]:
                del self._memory[key]

            async with self._session_maker() as session:
                result = await session.execute(
                    sql_delete(CacheRecord).where(CacheRecord.expires_at <= now)
                )
                await session.commit()
                deleted = result.rowcount or 0

            if deleted:
                logger.info(f"[CACHE] Cleanup removed {deleted} expired entries")
            return deleted
        except Exception as e:
            logger.error(f"[CACHE] Cleanup failed: {e}")
            return 0

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    def start_cleanup(self) -> None:
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())
            logger.info(f"[CACHE] Cleanup scheduled every {self.cleanup_interval}s")

    async def stop_cleanup(self) -> None:
        task, self._cleanup_task = self._cleanup_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            await self.cleanup_expired()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def sanitize_key(key: str) -> str:
        return _KEY_INVALID_CHARS.sub("_", key)[:MAX_KEY_LENGTH]

    @property
    def memory_entries(self) -> int:
        return len(self._memory)

    def memory_keys(self) -> list:
        return list(self._memory)

    def _set_memory(self, key: str, entry: CacheEntry) -> None:
        if key not in self._memory and len(self._memory) >= self.memory_max_entries:
            oldest = next(iter(self._memory))
            del self._memory[oldest]
        self._memory[key] = entry

    def _memory_size(self) -> int:
        return sum(len(json.dumps(e.data).encode("utf-8")) for e in self._memory.values())

    async def _delete_prefix(self, prefix: str) -> int:
        async with self._session_maker() as session:
            result = await session.execute(
                sql_delete(CacheRecord).where(CacheRecord.key.startswith(prefix, autoescape=True))
            )
            await session.commit()
            return result.rowcount or 0
