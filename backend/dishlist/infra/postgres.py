"""AsyncPG pool management for the backend."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import asyncpg

from dishlist.settings import settings

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None


async def init_pool() -> asyncpg.pool.Pool:
	global _pool
	if _pool is None:
		_pool = await asyncpg.create_pool(
			dsn=settings.postgres_url,
			min_size=settings.postgres_min_pool_size,
			max_size=settings.postgres_max_pool_size,
			ssl="require" if settings.postgres_ssl else "disable",
		)
	return _pool


def set_pool(pool: Optional[asyncpg.pool.Pool]) -> None:
	global _pool
	_pool = pool


async def get_pool() -> asyncpg.pool.Pool:
	if _pool is None:
		await init_pool()
	if _pool is None:
		raise RuntimeError("postgres pool is not initialised")
	return _pool


async def pool_or_none() -> Optional[asyncpg.pool.Pool]:
	"""Return the shared pool, or None when the database is unreachable."""

	if _pool is None:
		try:
			await init_pool()
		except (OSError, asyncio.TimeoutError, asyncpg.PostgresError) as exc:
			logger.warning("postgres.unavailable", extra={"error": type(exc).__name__})
			return None
	return _pool


async def close_pool() -> None:
	global _pool
	if _pool is not None:
		await _pool.close()
		_pool = None
