"""Data access for search and dishlist listings.

``PostgresCatalogStore`` reads the relational schema through an asyncpg pool
handed to it by the caller. ``MemoryCatalogStore`` mirrors the same contract
in-process for local development and tests.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Iterable, Optional, Protocol, Sequence

import asyncpg

from dishlist.domain.catalog import filters, models


class CatalogStore(Protocol):
	async def following_ids(self, user_id: str) -> set[str]: ...

	async def follower_ids(self, user_id: str) -> set[str]: ...

	async def followed_dishlist_ids(self, user_id: str) -> set[str]: ...

	async def saved_recipe_ids(self, user_id: str) -> set[str]: ...

	async def accessible_dishlist_ids(self, user_id: str) -> set[str]: ...

	async def search_users(self, query: str, *, exclude_id: str, limit: int) -> list[models.UserCandidate]: ...

	async def search_recipes(
		self,
		query: str,
		*,
		dishlist_ids: Iterable[str],
		limit: int,
	) -> list[models.RecipeCandidate]: ...

	async def search_dishlists(self, query: str, *, user_id: str, limit: int) -> list[models.DishListCandidate]: ...

	async def list_dishlists(self, scope: filters.DishListScope) -> list[models.DishListSummary]: ...


def _contains(haystack: Optional[str], needle: str) -> bool:
	return bool(haystack) and needle in haystack.lower()


def _escape_like(value: str) -> str:
	return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _tag_terms(query: str) -> list[str]:
	"""Tag lookups match the raw query or its stored (normalized) form."""

	terms = [query]
	normalized = models.normalize_tag(query)
	if normalized and normalized != query:
		terms.append(normalized)
	return terms


def _json_list(value: Any) -> list[Any]:
	if value is None:
		return []
	if isinstance(value, str):
		try:
			value = json.loads(value)
		except ValueError:
			return []
	return list(value) if isinstance(value, list) else []


class MemoryCatalogStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.users: dict[str, models.MemoryUser] = {}
		self.recipes: dict[str, models.MemoryRecipe] = {}
		self.dishlists: dict[str, models.MemoryDishList] = {}
		self.follows: dict[tuple[str, str], models.FollowStatus] = {}

	async def reset(self) -> None:
		async with self._lock:
			self.users.clear()
			self.recipes.clear()
			self.dishlists.clear()
			self.follows.clear()

	async def seed(
		self,
		*,
		users: Iterable[models.MemoryUser] | None = None,
		recipes: Iterable[models.MemoryRecipe] | None = None,
		dishlists: Iterable[models.MemoryDishList] | None = None,
		follows: Iterable[tuple[str, str]] | None = None,
		follow_requests: Iterable[tuple[str, str]] | None = None,
	) -> None:
		"""Replace the store contents. ``follows`` are accepted (follower, following) edges."""

		async with self._lock:
			self.users = {u.uid: u for u in users or []}
			self.recipes = {r.id: r for r in recipes or []}
			self.dishlists = {d.id: d for d in dishlists or []}
			self.follows = {edge: models.FollowStatus.PENDING for edge in follow_requests or []}
			self.follows.update({edge: models.FollowStatus.ACCEPTED for edge in follows or []})

	def _user_ref(self, user_id: str) -> models.UserRef:
		user = self.users.get(user_id)
		if user is None:
			return models.UserRef(uid=user_id)
		return models.UserRef(
			uid=user.uid,
			username=user.username,
			first_name=user.first_name,
			last_name=user.last_name,
		)

	def _recipe_candidate(self, recipe: models.MemoryRecipe) -> models.RecipeCandidate:
		return models.RecipeCandidate(
			id=recipe.id,
			title=recipe.title,
			creator=self._user_ref(recipe.creator_id),
			description=recipe.description,
			image_url=recipe.image_url,
			prep_time=recipe.prep_time,
			cook_time=recipe.cook_time,
			servings=recipe.servings,
			tags=list(recipe.tags),
			ingredients=list(recipe.ingredients),
			updated_at=recipe.updated_at,
		)

	def _accepted(self) -> list[tuple[str, str]]:
		return [edge for edge, status in self.follows.items() if status == models.FollowStatus.ACCEPTED]

	async def following_ids(self, user_id: str) -> set[str]:
		async with self._lock:
			return {following for follower, following in self._accepted() if follower == user_id}

	async def follower_ids(self, user_id: str) -> set[str]:
		async with self._lock:
			return {follower for follower, following in self._accepted() if following == user_id}

	async def followed_dishlist_ids(self, user_id: str) -> set[str]:
		async with self._lock:
			return {d.id for d in self.dishlists.values() if user_id in d.follower_ids}

	async def saved_recipe_ids(self, user_id: str) -> set[str]:
		async with self._lock:
			saved: set[str] = set()
			for dishlist in self.dishlists.values():
				if dishlist.owner_id == user_id or user_id in dishlist.collaborator_ids:
					saved.update(dishlist.recipe_ids)
			return saved

	async def accessible_dishlist_ids(self, user_id: str) -> set[str]:
		async with self._lock:
			return {d.id for d in self.dishlists.values() if filters.can_view(d, user_id)}

	async def search_users(self, query: str, *, exclude_id: str, limit: int) -> list[models.UserCandidate]:
		needle = query.lower()
		async with self._lock:
			results = [
				models.UserCandidate(
					uid=user.uid,
					username=user.username,
					first_name=user.first_name,
					last_name=user.last_name,
					avatar_url=user.avatar_url,
				)
				for user in sorted(self.users.values(), key=lambda u: u.uid)
				if user.uid != exclude_id
				and (
					_contains(user.username, needle)
					or _contains(user.first_name, needle)
					or _contains(user.last_name, needle)
				)
			]
		return results[:limit]

	async def search_recipes(
		self,
		query: str,
		*,
		dishlist_ids: Iterable[str],
		limit: int,
	) -> list[models.RecipeCandidate]:
		needle = query.lower()
		tag_terms = set(_tag_terms(query))
		allowed = set(dishlist_ids)
		async with self._lock:
			reachable: set[str] = set()
			for dishlist_id in allowed:
				dishlist = self.dishlists.get(dishlist_id)
				if dishlist is not None:
					reachable.update(dishlist.recipe_ids)
			results: list[models.RecipeCandidate] = []
			for recipe in sorted(self.recipes.values(), key=lambda r: r.id):
				if recipe.id not in reachable:
					continue
				if not (
					_contains(recipe.title, needle)
					or _contains(recipe.description, needle)
					or tag_terms.intersection(recipe.tags)
				):
					continue
				results.append(self._recipe_candidate(recipe))
		return results[:limit]

	def _dishlist_matches(self, dishlist: models.MemoryDishList, needle: str) -> bool:
		if _contains(dishlist.title, needle) or _contains(dishlist.description, needle):
			return True
		owner = self.users.get(dishlist.owner_id)
		if owner is not None and (
			_contains(owner.username, needle)
			or _contains(owner.first_name, needle)
			or _contains(owner.last_name, needle)
		):
			return True
		return any(
			_contains(self.recipes[recipe_id].title, needle)
			for recipe_id in dishlist.recipe_ids
			if recipe_id in self.recipes
		)

	async def search_dishlists(self, query: str, *, user_id: str, limit: int) -> list[models.DishListCandidate]:
		needle = query.lower()
		async with self._lock:
			results: list[models.DishListCandidate] = []
			for dishlist in sorted(self.dishlists.values(), key=lambda d: d.id):
				if not filters.can_view(dishlist, user_id):
					continue
				if not self._dishlist_matches(dishlist, needle):
					continue
				collaborators = []
				for collaborator_id in dishlist.collaborator_ids:
					ref = self._user_ref(collaborator_id)
					collaborators.append(
						models.CollaboratorRef(
							user_id=collaborator_id,
							first_name=ref.first_name,
							last_name=ref.last_name,
						)
					)
				sample = [
					models.SampledRecipe(
						title=self.recipes[recipe_id].title,
						ingredients=list(self.recipes[recipe_id].ingredients),
					)
					for recipe_id in dishlist.recipe_ids
					if recipe_id in self.recipes
				][: models.SAMPLED_RECIPES_PER_DISHLIST]
				results.append(
					models.DishListCandidate(
						id=dishlist.id,
						title=dishlist.title,
						owner=self._user_ref(dishlist.owner_id),
						description=dishlist.description,
						visibility=models.Visibility(dishlist.visibility),
						collaborators=collaborators,
						recipes=sample,
						follower_count=len(dishlist.follower_ids),
						recipe_count=len(dishlist.recipe_ids),
						updated_at=dishlist.updated_at,
					)
				)
		return results[:limit]

	async def list_dishlists(self, scope: filters.DishListScope) -> list[models.DishListSummary]:
		user_id = scope.user_id
		async with self._lock:
			return [
				models.DishListSummary(
					id=dishlist.id,
					title=dishlist.title,
					owner=self._user_ref(dishlist.owner_id),
					description=dishlist.description,
					visibility=models.Visibility(dishlist.visibility),
					is_default=dishlist.is_default,
					is_pinned=user_id in dishlist.pinned_by,
					recipe_count=len(dishlist.recipe_ids),
					is_owner=dishlist.owner_id == user_id,
					is_collaborator=user_id in dishlist.collaborator_ids,
					is_following=user_id in dishlist.follower_ids,
					created_at=dishlist.created_at,
					updated_at=dishlist.updated_at,
				)
				for dishlist in self.dishlists.values()
				if filters.scope_matches(scope, dishlist)
			]


class PostgresCatalogStore:
	def __init__(self, pool: asyncpg.Pool) -> None:
		self._pool = pool

	async def _column(self, sql: str, *args: Any) -> set[str]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(sql, *args)
		return {str(row[0]) for row in rows}

	async def following_ids(self, user_id: str) -> set[str]:
		return await self._column(
			"""
			SELECT "followingId"
			FROM "UserFollow"
			WHERE "followerId" = $1 AND status = 'ACCEPTED'
			""",
			user_id,
		)

	async def follower_ids(self, user_id: str) -> set[str]:
		return await self._column(
			"""
			SELECT "followerId"
			FROM "UserFollow"
			WHERE "followingId" = $1 AND status = 'ACCEPTED'
			""",
			user_id,
		)

	async def followed_dishlist_ids(self, user_id: str) -> set[str]:
		return await self._column(
			'SELECT "dishListId" FROM "DishListFollower" WHERE "userId" = $1',
			user_id,
		)

	async def saved_recipe_ids(self, user_id: str) -> set[str]:
		return await self._column(
			f"""
			SELECT DISTINCT dr."recipeId"
			FROM "DishListRecipe" dr
			JOIN "DishList" d ON d.id = dr."dishListId"
			WHERE d."ownerId" = $1
				OR {filters.scope_sql(filters.CollaborationsFilter(user_id), alias="d", param=1)}
			""",
			user_id,
		)

	async def accessible_dishlist_ids(self, user_id: str) -> set[str]:
		return await self._column(
			f'SELECT d.id FROM "DishList" d WHERE {filters.can_view_sql(alias="d", param=1)}',
			user_id,
		)

	async def search_users(self, query: str, *, exclude_id: str, limit: int) -> list[models.UserCandidate]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT u.uid, u.username, u."firstName", u."lastName", u."avatarUrl"
				FROM "User" u
				WHERE u.uid <> $1
					AND (
						u.username ILIKE $2
						OR u."firstName" ILIKE $2
						OR u."lastName" ILIKE $2
					)
				ORDER BY u.uid
				LIMIT $3
				""",
				exclude_id,
				f"%{_escape_like(query)}%",
				limit,
			)
		return [
			models.UserCandidate(
				uid=str(row["uid"]),
				username=row["username"],
				first_name=row["firstName"],
				last_name=row["lastName"],
				avatar_url=row["avatarUrl"],
			)
			for row in rows
		]

	async def search_recipes(
		self,
		query: str,
		*,
		dishlist_ids: Iterable[str],
		limit: int,
	) -> list[models.RecipeCandidate]:
		ids = list(dishlist_ids)
		if not ids:
			return []
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT
					r.id,
					r.title,
					r.description,
					r."imageUrl",
					r."prepTime",
					r."cookTime",
					r.servings,
					r.tags,
					r.ingredients,
					r."updatedAt",
					u.uid AS creator_uid,
					u.username AS creator_username,
					u."firstName" AS creator_first_name,
					u."lastName" AS creator_last_name
				FROM "Recipe" r
				JOIN "User" u ON u.uid = r."creatorId"
				WHERE (
						r.title ILIKE $1
						OR r.description ILIKE $1
						OR r.tags && $2::text[]
					)
					AND EXISTS (
						SELECT 1
						FROM "DishListRecipe" dr
						WHERE dr."recipeId" = r.id AND dr."dishListId" = ANY($3::text[])
					)
				ORDER BY r.id
				LIMIT $4
				""",
				f"%{_escape_like(query)}%",
				_tag_terms(query),
				ids,
				limit,
			)
		return [
			models.RecipeCandidate(
				id=str(row["id"]),
				title=row["title"],
				creator=models.UserRef(
					uid=str(row["creator_uid"]),
					username=row["creator_username"],
					first_name=row["creator_first_name"],
					last_name=row["creator_last_name"],
				),
				description=row["description"],
				image_url=row["imageUrl"],
				prep_time=row["prepTime"],
				cook_time=row["cookTime"],
				servings=row["servings"],
				tags=list(row["tags"] or []),
				ingredients=_json_list(row["ingredients"]),
				updated_at=row["updatedAt"],
			)
			for row in rows
		]

	async def search_dishlists(self, query: str, *, user_id: str, limit: int) -> list[models.DishListCandidate]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT
					d.id,
					d.title,
					d.description,
					d.visibility::text AS visibility,
					d."updatedAt",
					o.uid AS owner_uid,
					o.username AS owner_username,
					o."firstName" AS owner_first_name,
					o."lastName" AS owner_last_name,
					(SELECT COUNT(*) FROM "DishListRecipe" x WHERE x."dishListId" = d.id) AS recipe_count,
					(SELECT COUNT(*) FROM "DishListFollower" f WHERE f."dishListId" = d.id) AS follower_count
				FROM "DishList" d
				JOIN "User" o ON o.uid = d."ownerId"
				WHERE {filters.can_view_sql(alias="d", param=1)}
					AND (
						d.title ILIKE $2
						OR d.description ILIKE $2
						OR o.username ILIKE $2
						OR o."firstName" ILIKE $2
						OR o."lastName" ILIKE $2
						OR EXISTS (
							SELECT 1
							FROM "DishListRecipe" dr
							JOIN "Recipe" r ON r.id = dr."recipeId"
							WHERE dr."dishListId" = d.id AND r.title ILIKE $2
						)
					)
				ORDER BY d.id
				LIMIT $3
				""",
				user_id,
				f"%{_escape_like(query)}%",
				limit,
			)
			ids = [str(row["id"]) for row in rows]
			collaborators, samples = await self._dishlist_details(conn, ids)
		return [
			models.DishListCandidate(
				id=str(row["id"]),
				title=row["title"],
				owner=models.UserRef(
					uid=str(row["owner_uid"]),
					username=row["owner_username"],
					first_name=row["owner_first_name"],
					last_name=row["owner_last_name"],
				),
				description=row["description"],
				visibility=models.Visibility(row["visibility"]),
				collaborators=collaborators.get(str(row["id"]), []),
				recipes=samples.get(str(row["id"]), []),
				follower_count=int(row["follower_count"] or 0),
				recipe_count=int(row["recipe_count"] or 0),
				updated_at=row["updatedAt"],
			)
			for row in rows
		]

	async def _dishlist_details(
		self,
		conn: asyncpg.Connection,
		ids: Sequence[str],
	) -> tuple[dict[str, list[models.CollaboratorRef]], dict[str, list[models.SampledRecipe]]]:
		collaborators: dict[str, list[models.CollaboratorRef]] = {}
		samples: dict[str, list[models.SampledRecipe]] = {}
		if not ids:
			return collaborators, samples
		collaborator_rows = await conn.fetch(
			"""
			SELECT c."dishListId", c."userId", u."firstName", u."lastName"
			FROM "DishListCollaborator" c
			JOIN "User" u ON u.uid = c."userId"
			WHERE c."dishListId" = ANY($1::text[])
			ORDER BY c."invitedAt", c.id
			""",
			list(ids),
		)
		for row in collaborator_rows:
			collaborators.setdefault(str(row["dishListId"]), []).append(
				models.CollaboratorRef(
					user_id=str(row["userId"]),
					first_name=row["firstName"],
					last_name=row["lastName"],
				)
			)
		sample_rows = await conn.fetch(
			"""
			SELECT s."dishListId", s.title, s.ingredients
			FROM (
				SELECT
					dr."dishListId",
					r.title,
					r.ingredients,
					ROW_NUMBER() OVER (PARTITION BY dr."dishListId" ORDER BY dr."addedAt", dr.id) AS rn
				FROM "DishListRecipe" dr
				JOIN "Recipe" r ON r.id = dr."recipeId"
				WHERE dr."dishListId" = ANY($1::text[])
			) s
			WHERE s.rn <= $2
			ORDER BY s."dishListId", s.rn
			""",
			list(ids),
			models.SAMPLED_RECIPES_PER_DISHLIST,
		)
		for row in sample_rows:
			samples.setdefault(str(row["dishListId"]), []).append(
				models.SampledRecipe(title=row["title"], ingredients=_json_list(row["ingredients"]))
			)
		return collaborators, samples

	async def list_dishlists(self, scope: filters.DishListScope) -> list[models.DishListSummary]:
		async with self._pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				SELECT
					d.id,
					d.title,
					d.description,
					d.visibility::text AS visibility,
					d."isDefault",
					d."ownerId",
					d."createdAt",
					d."updatedAt",
					o.username AS owner_username,
					o."firstName" AS owner_first_name,
					o."lastName" AS owner_last_name,
					(SELECT COUNT(*) FROM "DishListRecipe" x WHERE x."dishListId" = d.id) AS recipe_count,
					EXISTS (
						SELECT 1 FROM "DishListCollaborator" c WHERE c."dishListId" = d.id AND c."userId" = $1
					) AS is_collaborator,
					EXISTS (
						SELECT 1 FROM "DishListFollower" f WHERE f."dishListId" = d.id AND f."userId" = $1
					) AS is_following,
					EXISTS (
						SELECT 1 FROM "UserDishListPin" p WHERE p."dishListId" = d.id AND p."userId" = $1
					) AS is_pinned
				FROM "DishList" d
				JOIN "User" o ON o.uid = d."ownerId"
				WHERE {filters.scope_sql(scope, alias="d", param=1)}
				""",
				scope.user_id,
			)
		return [
			models.DishListSummary(
				id=str(row["id"]),
				title=row["title"],
				owner=models.UserRef(
					uid=str(row["ownerId"]),
					username=row["owner_username"],
					first_name=row["owner_first_name"],
					last_name=row["owner_last_name"],
				),
				description=row["description"],
				visibility=models.Visibility(row["visibility"]),
				is_default=bool(row["isDefault"]),
				is_pinned=bool(row["is_pinned"]),
				recipe_count=int(row["recipe_count"] or 0),
				is_owner=str(row["ownerId"]) == scope.user_id,
				is_collaborator=bool(row["is_collaborator"]),
				is_following=bool(row["is_following"]),
				created_at=row["createdAt"],
				updated_at=row["updatedAt"],
			)
			for row in rows
		]
