"""Redis client wrapper for table state persistence."""

from __future__ import annotations

import os
from typing import Optional

import redis.asyncio as redis

from holdem.models import TableState

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

_pool: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    global _pool
    if _pool is None:
        _pool = redis.from_url(REDIS_URL, decode_responses=True)
    return _pool


def _table_key(table_id: str) -> str:
    return f"table:{table_id}"


async def store_table(table: TableState) -> None:
    r = await get_redis()
    await r.set(_table_key(table.id), table.model_dump_json(by_alias=True))


async def load_table(table_id: str) -> Optional[TableState]:
    r = await get_redis()
    raw = await r.get(_table_key(table_id))
    if raw is None:
        return None
    return TableState.model_validate_json(raw)


async def close() -> None:
    global _pool
    if _pool is not None:
        await _pool.aclose()
        _pool = None
