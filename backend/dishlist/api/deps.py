"""FastAPI dependencies resolving the catalog store behind search and listings."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException

from dishlist.domain.catalog.store import CatalogStore, PostgresCatalogStore
from dishlist.domain.search import memory_store
from dishlist.infra import postgres
from dishlist.settings import settings


async def get_catalog_store() -> Optional[CatalogStore]:
	"""The configured store, or None when the Postgres backend is unreachable.

	The in-process store is only used when ``search_backend`` is ``memory``.
	"""

	if settings.search_backend.lower() == "memory":
		return memory_store()
	pool = await postgres.pool_or_none()
	if pool is None:
		return None
	return PostgresCatalogStore(pool)


async def get_library_store(store: Optional[CatalogStore] = Depends(get_catalog_store)) -> CatalogStore:
	if store is None:
		raise HTTPException(status_code=500, detail="dishlists_unavailable")
	return store
