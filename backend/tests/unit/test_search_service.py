import pytest

from dishlist.domain.catalog import models
from dishlist.domain.catalog.store import MemoryCatalogStore
from dishlist.domain.search import memory_store, policy, schemas, seed_memory_store
from dishlist.domain.search.service import SearchService
from dishlist.infra.auth import AuthenticatedUser
from dishlist.settings import settings

USER_ME = "u-me"
USER_ANNA = "u-anna"
USER_MARK = "u-mark"

ME = AuthenticatedUser(id=USER_ME)


def _users() -> list[models.MemoryUser]:
	return [
		models.MemoryUser(uid=USER_ME, username="annaself", first_name="Anna", last_name="Self"),
		models.MemoryUser(uid=USER_ANNA, username="annab", first_name="Anna", last_name="Bell"),
		models.MemoryUser(uid=USER_MARK, username="mrossi", first_name="Mark", last_name="Rossi"),
	]


def _recipes() -> list[models.MemoryRecipe]:
	return [
		models.MemoryRecipe(id="r-curry", title="Chicken Curry", creator_id=USER_ANNA),
		models.MemoryRecipe(id="r-leftover", title="Soup", description="leftover chicken today", creator_id=USER_ME),
		models.MemoryRecipe(id="r-secret", title="Secret Chicken Pie", creator_id=USER_ANNA),
	]


def _dishlists(*, secret_collaborators: list[str] | None = None) -> list[models.MemoryDishList]:
	return [
		models.MemoryDishList(id="d-anna", title="Anna's Dinners", owner_id=USER_ANNA, recipe_ids=["r-curry"]),
		models.MemoryDishList(id="d-me", title="My Soups", owner_id=USER_ME, recipe_ids=["r-leftover"]),
		models.MemoryDishList(
			id="d-secret",
			title="Secret Chicken",
			owner_id=USER_ANNA,
			visibility=models.Visibility.PRIVATE,
			collaborator_ids=list(secret_collaborators or []),
			recipe_ids=["r-secret"],
		),
	]


async def _seed(**overrides) -> None:
	values = dict(users=_users(), recipes=_recipes(), dishlists=_dishlists())
	values.update(overrides)
	await seed_memory_store(**values)


def _service() -> SearchService:
	return SearchService(memory_store())


class _ExplodingStore:
	def __getattr__(self, name):
		raise AssertionError(f"store accessed: {name}")


class _BrokenStore(MemoryCatalogStore):
	async def following_ids(self, user_id: str) -> set[str]:
		raise OSError("connection refused")


@pytest.mark.asyncio
@pytest.mark.parametrize("tab", ["all", "users", "recipes", "dishlists"])
async def test_empty_query_returns_nothing_without_touching_store(tab):
	service = SearchService(_ExplodingStore())

	response = await service.search(ME, schemas.SearchQuery(q="   ", tab=tab))

	assert response == schemas.SearchResponse()
	assert response.next_cursor is None


@pytest.mark.asyncio
async def test_invalid_tab_returns_empty_results():
	service = SearchService(_ExplodingStore())

	response = await service.search(ME, schemas.SearchQuery(q="chicken", tab="people"))

	assert response.users == [] and response.recipes == [] and response.dish_lists == []


@pytest.mark.asyncio
async def test_requester_never_appears_in_user_results():
	await _seed()

	response = await _service().search(ME, schemas.SearchQuery(q="anna", tab="users"))

	assert [user.uid for user in response.users] == [USER_ANNA]


@pytest.mark.asyncio
async def test_exact_username_of_mutual_follow_scores_140():
	await _seed(follows=[(USER_ME, USER_MARK), (USER_MARK, USER_ME)])

	response = await _service().search(ME, schemas.SearchQuery(q="mrossi", tab="users"))

	assert len(response.users) == 1
	assert response.users[0].score == 140
	assert response.users[0].is_mutual is True


@pytest.mark.asyncio
async def test_pending_follow_request_does_not_boost():
	await _seed(follow_requests=[(USER_ME, USER_ANNA)])

	pending = await _service().search(ME, schemas.SearchQuery(q="annab", tab="users"))
	await _seed(follows=[(USER_ME, USER_ANNA)])
	accepted = await _service().search(ME, schemas.SearchQuery(q="annab", tab="users"))

	assert pending.users[0].score == 100
	assert pending.users[0].is_following is False
	assert accepted.users[0].score == 130
	assert accepted.users[0].is_following is True


@pytest.mark.asyncio
async def test_title_match_outranks_description_match():
	await _seed()

	response = await _service().search(ME, schemas.SearchQuery(q="chicken", tab="recipes"))

	assert [recipe.id for recipe in response.recipes] == ["r-curry", "r-leftover"]
	assert response.recipes[0].score > response.recipes[1].score
	assert response.recipes[1].is_saved is True


@pytest.mark.asyncio
async def test_recipes_below_threshold_are_dropped():
	await _seed()

	response = await _service().search(AuthenticatedUser(id=USER_ANNA), schemas.SearchQuery(q="chicken", tab="recipes"))

	ids = [recipe.id for recipe in response.recipes]
	assert "r-leftover" not in ids
	assert ids == ["r-curry", "r-secret"]


@pytest.mark.asyncio
async def test_private_lists_and_their_recipes_stay_hidden():
	await _seed()

	dishlists = await _service().search(ME, schemas.SearchQuery(q="secret", tab="dishlists"))
	recipes = await _service().search(ME, schemas.SearchQuery(q="secret", tab="recipes"))

	assert dishlists.dish_lists == []
	assert recipes.recipes == []


@pytest.mark.asyncio
async def test_collaborator_sees_private_list():
	await _seed(dishlists=_dishlists(secret_collaborators=[USER_ME]))

	dishlists = await _service().search(ME, schemas.SearchQuery(q="secret", tab="dishlists"))
	recipes = await _service().search(ME, schemas.SearchQuery(q="secret", tab="recipes"))

	assert [d.id for d in dishlists.dish_lists] == ["d-secret"]
	assert dishlists.dish_lists[0].is_collaborator is True
	assert [r.id for r in recipes.recipes] == ["r-secret"]


def _numbered_recipes(count: int) -> tuple[list[models.MemoryRecipe], list[models.MemoryDishList]]:
	recipes = [
		models.MemoryRecipe(id=f"r-{index:02d}", title=f"Chicken {index}", creator_id=USER_ANNA)
		for index in range(1, count + 1)
	]
	dishlists = [
		models.MemoryDishList(
			id="d-anna",
			title="Anna's Dinners",
			owner_id=USER_ANNA,
			recipe_ids=[recipe.id for recipe in recipes],
		)
	]
	return recipes, dishlists


@pytest.mark.asyncio
async def test_cursor_pages_are_disjoint_and_ordered():
	recipes, dishlists = _numbered_recipes(5)
	await _seed(recipes=recipes, dishlists=dishlists)
	service = _service()

	full = await service.search(ME, schemas.SearchQuery(q="chicken", tab="recipes", limit="50"))
	first = await service.search(ME, schemas.SearchQuery(q="chicken", tab="recipes", limit="2"))
	second = await service.search(
		ME, schemas.SearchQuery(q="chicken", tab="recipes", limit="2", cursor=first.next_cursor)
	)
	third = await service.search(
		ME, schemas.SearchQuery(q="chicken", tab="recipes", limit="2", cursor=second.next_cursor)
	)

	assert [r.id for r in first.recipes] == ["r-01", "r-02"]
	assert first.next_cursor == "r-02"
	assert [r.id for r in second.recipes] == ["r-03", "r-04"]
	assert second.next_cursor == "r-04"
	assert [r.id for r in third.recipes] == ["r-05"]
	assert third.next_cursor is None
	assert [r.id for page in (first, second, third) for r in page.recipes] == [r.id for r in full.recipes]


@pytest.mark.asyncio
async def test_stale_cursor_restarts_from_first_page():
	recipes, dishlists = _numbered_recipes(3)
	await _seed(recipes=recipes, dishlists=dishlists)

	response = await _service().search(
		ME, schemas.SearchQuery(q="chicken", tab="recipes", limit="2", cursor="r-deleted")
	)

	assert [r.id for r in response.recipes] == ["r-01", "r-02"]
	assert response.next_cursor == "r-02"


@pytest.mark.asyncio
async def test_non_numeric_limit_falls_back_to_default():
	recipes, dishlists = _numbered_recipes(25)
	await _seed(recipes=recipes, dishlists=dishlists)

	response = await _service().search(ME, schemas.SearchQuery(q="chicken", tab="recipes", limit="lots"))

	assert len(response.recipes) == policy.DEFAULT_LIMIT
	assert response.next_cursor == "r-20"


@pytest.mark.asyncio
async def test_all_tab_blends_normalized_categories_without_cursor():
	await _seed()

	response = await _service().search(ME, schemas.SearchQuery(q="chicken", tab="all"))

	assert response.users == []
	assert [r.id for r in response.recipes] == ["r-curry"]
	assert response.recipes[0].score == pytest.approx(90 * settings.search_normalize_recipes)
	# raw 30 clears the threshold before scaling
	assert [d.id for d in response.dish_lists] == ["d-anna"]
	assert response.dish_lists[0].score == pytest.approx(30 * settings.search_normalize_dishlists)
	assert response.next_cursor is None


@pytest.mark.asyncio
async def test_all_tab_caps_each_category():
	recipes, dishlists = _numbered_recipes(12)
	await _seed(recipes=recipes, dishlists=dishlists)

	response = await _service().search(ME, schemas.SearchQuery(q="chicken", tab="all"))

	assert len(response.recipes) == policy.ALL_TAB_LIMIT
	assert response.next_cursor is None


@pytest.mark.asyncio
async def test_store_failure_surfaces_as_search_failed():
	service = SearchService(_BrokenStore())

	with pytest.raises(policy.SearchUnavailableError) as excinfo:
		await service.search(ME, schemas.SearchQuery(q="chicken", tab="users"))

	assert excinfo.value.status_code == 500
	assert excinfo.value.detail == "search_failed"


@pytest.mark.asyncio
async def test_search_is_rate_limited():
	await _seed()
	settings.search_rate_limit_per_minute = 1
	service = _service()

	await service.search(ME, schemas.SearchQuery(q="chicken", tab="recipes"))
	with pytest.raises(policy.SearchRateLimitError):
		await service.search(ME, schemas.SearchQuery(q="chicken", tab="recipes"))


@pytest.mark.asyncio
async def test_missing_store_fails_only_for_real_queries():
	service = SearchService(None)

	empty = await service.search(ME, schemas.SearchQuery(q="", tab="users"))
	with pytest.raises(policy.SearchUnavailableError) as excinfo:
		await service.search(ME, schemas.SearchQuery(q="chicken", tab="recipes"))

	assert empty == schemas.SearchResponse()
	assert excinfo.value.detail == "search_failed"


def _tied_users(*followed: models.MemoryUser) -> list[models.MemoryUser]:
	return [models.MemoryUser(uid=USER_ME, username="me", first_name="Me"), *followed]


@pytest.mark.asyncio
async def test_users_tab_ties_put_followed_first_then_missing_username_then_alphabetical():
	# "Joanna Smith" contains the query (60) and the follow adds 30, matching
	# the starts-with name score (90) of the other two
	unnamed = models.MemoryUser(uid="u-unnamed", username=None, first_name="Anna", last_name="Zed")
	aardvark = models.MemoryUser(uid="u-aardvark", username="aardvark", first_name="Anna", last_name="Young")
	followed = models.MemoryUser(uid="u-zoe", username="zoe", first_name="Joanna", last_name="Smith")
	await _seed(users=_tied_users(aardvark, followed, unnamed), follows=[(USER_ME, "u-zoe")])

	response = await _service().search(ME, schemas.SearchQuery(q="anna", tab="users"))

	assert [user.score for user in response.users] == [90, 90, 90]
	assert [user.uid for user in response.users] == ["u-zoe", "u-unnamed", "u-aardvark"]
	assert response.users[0].is_following is True


@pytest.mark.asyncio
async def test_all_tab_ties_ignore_follow_state():
	# Word match on the name (80) against a username word match (65) plus the
	# all-tab follow boost (15)
	unnamed = models.MemoryUser(uid="u-unnamed", username=None, first_name="Lee", last_name="Anna")
	kim = models.MemoryUser(uid="u-kim", username="bkim", first_name="Kim", last_name="Anna")
	followed = models.MemoryUser(uid="u-chef", username="chef.anna", first_name="Zoe", last_name="Quinn")
	await _seed(users=_tied_users(followed, kim, unnamed), follows=[(USER_ME, "u-chef")])

	ranked = await _service().search_users(
		"anna",
		USER_ME,
		await _service().load_social_context(USER_ME),
		all_tab=True,
		limit=policy.ALL_TAB_LIMIT,
	)

	assert [hit.score for hit in ranked] == [80, 80, 80]
	assert [hit.user.uid for hit in ranked] == ["u-unnamed", "u-kim", "u-chef"]
	assert ranked[2].is_following is True
