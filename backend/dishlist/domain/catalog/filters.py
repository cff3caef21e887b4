"""Dishlist access scopes.

Each library tab maps to one scope variant. Every consumer resolves a scope
through a ``match`` over the four variants, so adding a variant without
handling it fails loudly instead of silently widening access.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from dishlist.domain.catalog import models


@dataclass(frozen=True, slots=True)
class AllFilter:
	"""Lists the user owns, collaborates on, or follows."""

	user_id: str


@dataclass(frozen=True, slots=True)
class MyFilter:
	user_id: str


@dataclass(frozen=True, slots=True)
class CollaborationsFilter:
	user_id: str


@dataclass(frozen=True, slots=True)
class FollowingFilter:
	user_id: str


DishListScope = Union[AllFilter, MyFilter, CollaborationsFilter, FollowingFilter]

_TABS = {
	"all": AllFilter,
	"my": MyFilter,
	"collaborations": CollaborationsFilter,
	"following": FollowingFilter,
}


def scope_for_tab(tab: Optional[str], user_id: str) -> DishListScope:
	"""Unknown or missing tabs fall back to the combined scope."""

	factory = _TABS.get((tab or "all").strip().lower(), AllFilter)
	return factory(user_id)


def scope_matches(scope: DishListScope, dishlist: models.MemoryDishList) -> bool:
	match scope:
		case MyFilter(user_id=uid):
			return dishlist.owner_id == uid
		case CollaborationsFilter(user_id=uid):
			return uid in dishlist.collaborator_ids
		case FollowingFilter(user_id=uid):
			return uid in dishlist.follower_ids
		case AllFilter(user_id=uid):
			return dishlist.owner_id == uid or uid in dishlist.collaborator_ids or uid in dishlist.follower_ids
	raise TypeError(f"unhandled dishlist scope: {scope!r}")


def scope_sql(scope: DishListScope, *, alias: str = "d", param: int = 1) -> str:
	"""Return a WHERE fragment for ``scope``; the user id binds to ``$param``."""

	owned = f'{alias}."ownerId" = ${param}'
	collaborated = (
		'EXISTS (SELECT 1 FROM "DishListCollaborator" c '
		f'WHERE c."dishListId" = {alias}.id AND c."userId" = ${param})'
	)
	followed = (
		'EXISTS (SELECT 1 FROM "DishListFollower" f '
		f'WHERE f."dishListId" = {alias}.id AND f."userId" = ${param})'
	)
	match scope:
		case MyFilter():
			return owned
		case CollaborationsFilter():
			return collaborated
		case FollowingFilter():
			return followed
		case AllFilter():
			return f"({owned} OR {collaborated} OR {followed})"
	raise TypeError(f"unhandled dishlist scope: {scope!r}")


def can_view(dishlist: models.MemoryDishList, user_id: str) -> bool:
	"""Search access rule: public lists plus anything in the user's combined scope."""

	if dishlist.visibility == models.Visibility.PUBLIC:
		return True
	return scope_matches(AllFilter(user_id), dishlist)


def can_view_sql(*, alias: str = "d", param: int = 1) -> str:
	return f"({alias}.visibility = 'PUBLIC' OR {scope_sql(AllFilter(''), alias=alias, param=param)})"
