"""Service layer for search across users, recipes and dishlists."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence, TypeVar

import asyncpg

from dishlist.domain.catalog import models as catalog
from dishlist.domain.catalog.store import CatalogStore, MemoryCatalogStore
from dishlist.domain.search import models, policy, ranking, schemas
from dishlist.infra.auth import AuthenticatedUser
from dishlist.obs import metrics as obs_metrics
from dishlist.settings import category_normalization, settings

logger = logging.getLogger(__name__)

# Failures of the data-store collaborator surfaced as search_failed
_STORE_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

H = TypeVar("H", models.UserHit, models.RecipeHit, models.DishListHit)


_MEMORY = MemoryCatalogStore()


def memory_store() -> MemoryCatalogStore:
	return _MEMORY


async def seed_memory_store(**kwargs) -> None:
	await _MEMORY.seed(**kwargs)


async def reset_memory_state() -> None:
	await _MEMORY.reset()


def _user_sort_key(*, all_tab: bool) -> Callable[[models.UserHit], tuple]:
	def key(hit: models.UserHit) -> tuple:
		username = hit.user.username or ""
		following_first = 0 if (not all_tab and hit.is_following) else 1
		return (-hit.score, following_first, username.casefold(), username)

	return key


def _by_score_then_id(hit: models.RecipeHit | models.DishListHit) -> tuple:
	return (-hit.score, hit.key)


def _after_cursor(hits: Sequence[H], cursor: Optional[str]) -> list[H]:
	"""Results following ``cursor``; a cursor no longer present restarts at the top."""

	if cursor:
		for index, hit in enumerate(hits):
			if hit.key == cursor:
				return list(hits[index + 1 :])
	return list(hits)


def _person(ref: catalog.UserRef) -> schemas.PersonSummary:
	return schemas.PersonSummary(
		uid=ref.uid,
		username=ref.username,
		first_name=ref.first_name,
		last_name=ref.last_name,
	)


def _user_result(hit: models.UserHit) -> schemas.ScoredUser:
	user = hit.user
	return schemas.ScoredUser(
		uid=user.uid,
		username=user.username,
		first_name=user.first_name,
		last_name=user.last_name,
		avatar_url=user.avatar_url,
		is_following=hit.is_following,
		is_mutual=hit.is_mutual,
		score=round(hit.score, 6),
	)


def _recipe_result(hit: models.RecipeHit) -> schemas.ScoredRecipe:
	recipe = hit.recipe
	return schemas.ScoredRecipe(
		id=recipe.id,
		title=recipe.title,
		description=recipe.description,
		image_url=recipe.image_url,
		prep_time=recipe.prep_time,
		cook_time=recipe.cook_time,
		servings=recipe.servings,
		tags=[tag for tag in recipe.tags or [] if isinstance(tag, str)],
		creator=_person(recipe.creator),
		is_saved=hit.is_saved,
		score=round(hit.score, 6),
	)


def _dishlist_result(hit: models.DishListHit) -> schemas.ScoredDishList:
	dishlist = hit.dishlist
	return schemas.ScoredDishList(
		id=dishlist.id,
		title=dishlist.title,
		description=dishlist.description,
		visibility=catalog.Visibility(dishlist.visibility).value,
		owner=_person(dishlist.owner),
		recipe_count=dishlist.recipe_count,
		follower_count=dishlist.follower_count,
		is_following=hit.is_following,
		is_collaborator=hit.is_collaborator,
		score=round(hit.score, 6),
	)


class SearchService:
	"""Scores store candidates per request; holds no state between calls."""

	def __init__(self, store: Optional[CatalogStore]) -> None:
		self._store = store

	async def load_social_context(self, user_id: str) -> catalog.SocialContext:
		following, followers, followed_dishlists = await asyncio.gather(
			self._store.following_ids(user_id),
			self._store.follower_ids(user_id),
			self._store.followed_dishlist_ids(user_id),
		)
		saved = await self._store.saved_recipe_ids(user_id)
		return catalog.SocialContext(
			following_ids=frozenset(following),
			follower_ids=frozenset(followers),
			followed_dishlist_ids=frozenset(followed_dishlists),
			saved_recipe_ids=frozenset(saved),
		)

	async def search_users(
		self,
		query: str,
		requester_id: str,
		social: catalog.SocialContext,
		*,
		all_tab: bool,
		limit: int,
		cursor: Optional[str] = None,
	) -> list[models.UserHit]:
		candidates = await self._store.search_users(
			query,
			exclude_id=requester_id,
			limit=settings.search_candidate_cap,
		)
		threshold = policy.user_threshold(all_tab=all_tab)
		hits = [ranking.score_user(candidate, query, social, all_tab=all_tab) for candidate in candidates]
		hits = [hit for hit in hits if hit.score >= threshold]
		hits.sort(key=_user_sort_key(all_tab=all_tab))
		return _after_cursor(hits, cursor)[:limit]

	async def search_recipes(
		self,
		query: str,
		requester_id: str,
		social: catalog.SocialContext,
		*,
		all_tab: bool,
		limit: int,
		cursor: Optional[str] = None,
	) -> list[models.RecipeHit]:
		dishlist_ids = await self._store.accessible_dishlist_ids(requester_id)
		if not dishlist_ids:
			return []
		candidates = await self._store.search_recipes(
			query,
			dishlist_ids=sorted(dishlist_ids),
			limit=settings.search_candidate_cap,
		)
		threshold = policy.recipe_threshold(all_tab=all_tab)
		hits = [ranking.score_recipe(candidate, query, social, all_tab=all_tab) for candidate in candidates]
		hits = [hit for hit in hits if hit.score >= threshold]
		hits.sort(key=_by_score_then_id)
		return _after_cursor(hits, cursor)[:limit]

	async def search_dishlists(
		self,
		query: str,
		requester_id: str,
		social: catalog.SocialContext,
		*,
		all_tab: bool,
		limit: int,
		cursor: Optional[str] = None,
	) -> list[models.DishListHit]:
		candidates = await self._store.search_dishlists(
			query,
			user_id=requester_id,
			limit=settings.search_candidate_cap,
		)
		threshold = policy.dishlist_threshold(all_tab=all_tab)
		hits = [
			ranking.score_dishlist(candidate, query, requester_id, social, all_tab=all_tab)
			for candidate in candidates
		]
		hits = [hit for hit in hits if hit.score >= threshold]
		hits.sort(key=_by_score_then_id)
		return _after_cursor(hits, cursor)[:limit]

	async def _search_all(self, query: str, requester_id: str) -> schemas.SearchResponse:
		social = await self.load_social_context(requester_id)
		users, recipes, dishlists = await asyncio.gather(
			self.search_users(query, requester_id, social, all_tab=True, limit=policy.ALL_TAB_LIMIT),
			self.search_recipes(query, requester_id, social, all_tab=True, limit=policy.ALL_TAB_LIMIT),
			self.search_dishlists(query, requester_id, social, all_tab=True, limit=policy.ALL_TAB_LIMIT),
		)
		# Thresholds and gates above ran on raw scores
		factors = category_normalization()
		return schemas.SearchResponse(
			users=[_user_result(models.rescaled(hit, factors["users"])) for hit in users],
			recipes=[_recipe_result(models.rescaled(hit, factors["recipes"])) for hit in recipes],
			dish_lists=[_dishlist_result(models.rescaled(hit, factors["dishlists"])) for hit in dishlists],
			next_cursor=None,
		)

	async def _search_tab(
		self,
		tab: policy.SearchTab,
		query: str,
		requester_id: str,
		*,
		limit: int,
		cursor: Optional[str],
	) -> schemas.SearchResponse:
		social = await self.load_social_context(requester_id)
		fetch = limit + 1
		match tab:
			case policy.SearchTab.USERS:
				users = await self.search_users(query, requester_id, social, all_tab=False, limit=fetch, cursor=cursor)
				page, more = users[:limit], len(users) > limit
				response = schemas.SearchResponse(users=[_user_result(hit) for hit in page])
			case policy.SearchTab.RECIPES:
				recipes = await self.search_recipes(query, requester_id, social, all_tab=False, limit=fetch, cursor=cursor)
				page, more = recipes[:limit], len(recipes) > limit
				response = schemas.SearchResponse(recipes=[_recipe_result(hit) for hit in page])
			case policy.SearchTab.DISHLISTS:
				dishlists = await self.search_dishlists(query, requester_id, social, all_tab=False, limit=fetch, cursor=cursor)
				page, more = dishlists[:limit], len(dishlists) > limit
				response = schemas.SearchResponse(dish_lists=[_dishlist_result(hit) for hit in page])
			case _:
				raise ValueError(f"not a dedicated tab: {tab!r}")
		if more and page:
			response.next_cursor = page[-1].key
		return response

	async def search(self, auth_user: AuthenticatedUser, query: schemas.SearchQuery) -> schemas.SearchResponse:
		start = time.perf_counter()
		tab = policy.SearchTab.parse(query.tab)
		tab_label = tab.value if tab is not None else "invalid"
		try:
			await policy.enforce_rate_limit(auth_user.id)
			normalized = query.normalized_query()
			if not normalized:
				return schemas.SearchResponse()
			if tab is None:
				logger.info("search.invalid_tab tab=%s", (query.tab or "")[:24])
				return schemas.SearchResponse()

			obs_metrics.inc_search_query(tab.value)
			if self._store is None:
				obs_metrics.inc_search_failure("pool_unavailable")
				logger.warning("search.unavailable tab=%s", tab.value)
				raise policy.SearchUnavailableError()
			try:
				if tab is policy.SearchTab.ALL:
					response = await self._search_all(normalized, auth_user.id)
				else:
					response = await self._search_tab(
						tab,
						normalized,
						auth_user.id,
						limit=policy.parse_limit(query.limit),
						cursor=query.cursor or None,
					)
			except _STORE_ERRORS as exc:
				obs_metrics.inc_search_failure(type(exc).__name__)
				logger.exception("search.failed tab=%s", tab.value)
				raise policy.SearchUnavailableError() from exc

			obs_metrics.observe_search_results("users", len(response.users))
			obs_metrics.observe_search_results("recipes", len(response.recipes))
			obs_metrics.observe_search_results("dishlists", len(response.dish_lists))
			logger.info(
				"search.%s query=%s users=%d recipes=%d dishlists=%d",
				tab.value,
				normalized[:24],
				len(response.users),
				len(response.recipes),
				len(response.dish_lists),
			)
			return response
		finally:
			obs_metrics.observe_search_latency(tab_label, time.perf_counter() - start)
