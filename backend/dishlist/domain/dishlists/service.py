"""The requester's dishlist library: owned, collaborated and followed lists."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from dishlist.domain.catalog import filters
from dishlist.domain.catalog import models as catalog
from dishlist.domain.catalog.store import CatalogStore
from dishlist.domain.dishlists import schemas
from dishlist.domain.search.schemas import PersonSummary
from dishlist.infra.auth import AuthenticatedUser

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _aware(value: Optional[datetime]) -> datetime:
	if value is None:
		return _EPOCH
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value


def order_library(rows: list[catalog.DishListSummary]) -> list[catalog.DishListSummary]:
	"""Default list first, then pinned lists, then most recently updated."""

	by_recency = sorted(rows, key=lambda row: (_aware(row.updated_at), row.id), reverse=True)
	return sorted(by_recency, key=lambda row: (not row.is_default, not row.is_pinned))


def _summary_out(row: catalog.DishListSummary) -> schemas.DishListSummaryOut:
	return schemas.DishListSummaryOut(
		id=row.id,
		title=row.title,
		description=row.description,
		visibility=catalog.Visibility(row.visibility).value,
		is_default=row.is_default,
		is_pinned=row.is_pinned,
		recipe_count=row.recipe_count,
		is_owner=row.is_owner,
		is_collaborator=row.is_collaborator,
		is_following=row.is_following,
		owner=PersonSummary(
			uid=row.owner.uid,
			username=row.owner.username,
			first_name=row.owner.first_name,
			last_name=row.owner.last_name,
		),
		created_at=row.created_at,
		updated_at=row.updated_at,
	)


class DishListLibraryService:
	def __init__(self, store: CatalogStore) -> None:
		self._store = store

	async def list_for(self, auth_user: AuthenticatedUser, tab: Optional[str]) -> schemas.LibraryResponse:
		scope = filters.scope_for_tab(tab, auth_user.id)
		rows = await self._store.list_dishlists(scope)
		logger.info("dishlists.library scope=%s results=%d", type(scope).__name__, len(rows))
		return schemas.LibraryResponse(dish_lists=[_summary_out(row) for row in order_library(rows)])
