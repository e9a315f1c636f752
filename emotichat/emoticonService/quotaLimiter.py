"""
Guest quota stores.

Both stores expose the same capability, ``check_and_increment``:

- InMemoryQuotaStore: per-process map of client id -> QuotaRecord,
  split across a fixed number of lock-guarded shards
- RedisQuotaStore:    one Redis hash per client, checked and incremented
  atomically by a Lua script so every worker shares the same counters
"""
import threading
import time
import zlib
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from loguru import logger
import redis.asyncio as aioredis

from emotichat.pipeline.config import (
    QUOTA_WINDOW_SECONDS,
    QUOTA_LOCK_SHARDS,
    REDIS_HOST,
    REDIS_PORT,
    REDIS_DB,
    REDIS_PASSWORD,
    REDIS_KEY_PREFIX,
    REDIS_SOCKET_CONNECT_TIMEOUT,
)


@dataclass
class QuotaRecord:
    count: int
    window_start: float


@dataclass(frozen=True)
class QuotaDecision:
    allowed: bool
    remaining: int


class QuotaStore:
    async def check_and_increment(self, client_id: str, daily_limit: int) -> QuotaDecision:
        raise NotImplementedError

    async def aclose(self) -> None:
        pass


class InMemoryQuotaStore(QuotaStore):

    def __init__(
        self,
        window_seconds: int = QUOTA_WINDOW_SECONDS,
        clock: Callable[[], float] = time.time,
        shards: int = QUOTA_LOCK_SHARDS,
    ):
        self.window_seconds = window_seconds
        self.clock = clock
        # client ids are hashed onto a fixed set of (lock, records) shards
        self._shards: List[Tuple[threading.Lock, Dict[str, QuotaRecord]]] = [
            (threading.Lock(), {}) for _ in range(max(1, shards))
        ]
        logger.info(f"[Quota] In-memory store ready (window={window_seconds}s, shards={len(self._shards)})")

    def _shard_for(self, client_id: str) -> Tuple[threading.Lock, Dict[str, QuotaRecord]]:
        return self._shards[zlib.crc32(client_id.encode("utf-8")) % len(self._shards)]

    def _is_expired(self, record: QuotaRecord, now: float) -> bool:
        return now - record.window_start > self.window_seconds

    def get_record(self, client_id: str) -> Optional[QuotaRecord]:
        lock, records = self._shard_for(client_id)
        with lock:
            record = records.get(client_id)
            if record is None:
                return None
            return QuotaRecord(record.count, record.window_start)

    def __len__(self) -> int:
        return sum(len(records) for _, records in self._shards)

    async def check_and_increment(self, client_id: str, daily_limit: int) -> QuotaDecision:
        limit = max(1, int(daily_limit))
        lock, records = self._shard_for(client_id)
        with lock:
            now = self.clock()
            record = records.get(client_id)
            if record is None:
                # a new client is the moment to drop this shard's stale windows
                stale = [key for key, value in records.items() if self._is_expired(value, now)]
                for key in stale:
                    del records[key]
            if record is None or self._is_expired(record, now):
                record = QuotaRecord(count=0, window_start=now)
                records[client_id] = record

            if record.count >= limit:
                logger.info(f"[Quota] client={client_id} rejected ({record.count}/{limit})")
                return QuotaDecision(allowed=False, remaining=0)

            record.count += 1
            remaining = limit - record.count
            logger.debug(f"[Quota] client={client_id} allowed ({record.count}/{limit})")
            return QuotaDecision(allowed=True, remaining=remaining)


# KEYS[1] = quota hash; ARGV = limit, now (ms), window (ms)
_CHECK_AND_INCREMENT_LUA = """
local key = KEYS[1]
local limit = tonumber(ARGV[1])
local now = tonumber(ARGV[2])
local window = tonumber(ARGV[3])
local start = tonumber(redis.call('HGET', key, 'window_start'))
local count = tonumber(redis.call('HGET', key, 'count'))
if (not start) or (not count) or (now - start > window) then
    count = 0
    redis.call('HSET', key, 'window_start', now, 'count', 0)
    redis.call('PEXPIRE', key, window * 2)
end
if count >= limit then
    return {0, 0}
end
count = redis.call('HINCRBY', key, 'count', 1)
return {1, limit - count}
"""


class RedisQuotaStore(QuotaStore):

    def __init__(
        self,
        client,
        window_seconds: int = QUOTA_WINDOW_SECONDS,
        key_prefix: str = REDIS_KEY_PREFIX,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.window_seconds = window_seconds
        self.key_prefix = key_prefix
        self.clock = clock
        self._script = client.register_script(_CHECK_AND_INCREMENT_LUA)

    def _get_key(self, client_id: str) -> str:
        return f"{self.key_prefix}:quota:{client_id}"

    async def check_and_increment(self, client_id: str, daily_limit: int) -> QuotaDecision:
        limit = max(1, int(daily_limit))
        now_ms = int(self.clock() * 1000)
        window_ms = int(self.window_seconds * 1000)
        allowed, remaining = await self._script(
            keys=[self._get_key(client_id)],
            args=[limit, now_ms, window_ms],
        )
        decision = QuotaDecision(allowed=bool(int(allowed)), remaining=int(remaining))
        if not decision.allowed:
            logger.info(f"[Quota] client={client_id} rejected by redis store (limit={limit})")
        return decision

    @classmethod
    def from_config(cls) -> "RedisQuotaStore":
        client = aioredis.Redis(
            host=REDIS_HOST,
            port=REDIS_PORT,
            db=REDIS_DB,
            password=REDIS_PASSWORD,
            socket_connect_timeout=REDIS_SOCKET_CONNECT_TIMEOUT,
        )
        logger.info(f"[Quota] Redis store @ {REDIS_HOST}:{REDIS_PORT} (db={REDIS_DB})")
        return cls(client)

    async def aclose(self) -> None:
        await self.client.aclose()
        logger.info("[Quota] Redis connection closed")
