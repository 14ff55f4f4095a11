"""Pool access for repositories with uniform storage error wrapping."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional

import asyncpg

from overlap.domain.common.errors import StorageFailure
from overlap.infra import postgres

PoolFactory = Callable[[], Awaitable[asyncpg.pool.Pool]]

STORAGE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class PostgresRepository:
	"""Base for asyncpg-backed repositories.

	Statement timeouts come from the pool's ``command_timeout``; any driver,
	network or timeout error surfaces as StorageFailure naming the operation.
	"""

	def __init__(self, pool_factory: Optional[PoolFactory] = None) -> None:
		self._pool_factory = pool_factory

	async def _pool(self) -> asyncpg.pool.Pool:
		if self._pool_factory is not None:
			return await self._pool_factory()
		return await postgres.get_pool()

	@asynccontextmanager
	async def _connection(self, operation: str) -> AsyncIterator[asyncpg.Connection]:
		try:
			pool = await self._pool()
			async with pool.acquire() as conn:
				yield conn
		except STORAGE_ERRORS as exc:
			raise StorageFailure(operation) from exc
