import pytest

from dishlist.domain.catalog import models
from dishlist.domain.search import seed_memory_store
from dishlist.infra import jwt as jwt_helper
from dishlist.settings import settings

USER_ME = "u-me"
USER_MARK = "u-mark"


async def _seed() -> None:
	await seed_memory_store(
		users=[
			models.MemoryUser(uid=USER_ME, username="me", first_name="Me"),
			models.MemoryUser(uid=USER_MARK, username="mrossi", first_name="Mark", last_name="Rossi"),
		],
		recipes=[models.MemoryRecipe(id="r-1", title="Mark's Chicken", creator_id=USER_MARK)],
		dishlists=[
			models.MemoryDishList(id="d-1", title="Rossi Family Dinners", owner_id=USER_MARK, recipe_ids=["r-1"]),
		],
		follows=[(USER_ME, USER_MARK), (USER_MARK, USER_ME)],
	)


@pytest.mark.asyncio
async def test_search_users_tab_serializes_camel_case(api_client):
	await _seed()

	response = await api_client.get(
		"/search",
		params={"q": "mrossi", "tab": "users"},
		headers={"X-User-Id": USER_ME},
	)
	payload = response.json()

	assert response.status_code == 200
	assert set(payload) == {"users", "recipes", "dishLists", "nextCursor"}
	assert payload["recipes"] == [] and payload["dishLists"] == []
	user = payload["users"][0]
	assert user["uid"] == USER_MARK
	assert user["firstName"] == "Mark"
	assert user["isMutual"] is True
	assert user["score"] == 140
	assert payload["nextCursor"] is None


@pytest.mark.asyncio
async def test_search_all_tab_returns_every_category(api_client):
	await _seed()

	response = await api_client.get("/search", params={"q": "mark"}, headers={"X-User-Id": USER_ME})
	payload = response.json()

	assert response.status_code == 200
	assert [u["uid"] for u in payload["users"]] == [USER_MARK]
	assert [r["id"] for r in payload["recipes"]] == ["r-1"]
	assert payload["recipes"][0]["creator"]["username"] == "mrossi"
	assert payload["nextCursor"] is None


@pytest.mark.asyncio
async def test_search_without_query_is_empty(api_client):
	response = await api_client.get("/search", headers={"X-User-Id": USER_ME})

	assert response.status_code == 200
	assert response.json() == {"users": [], "recipes": [], "dishLists": [], "nextCursor": None}


@pytest.mark.asyncio
async def test_search_requires_authentication(api_client):
	response = await api_client.get("/search", params={"q": "mark"})

	assert response.status_code == 401
	assert response.json()["detail"] == "invalid_token"


@pytest.mark.asyncio
async def test_search_accepts_bearer_token(api_client):
	await _seed()
	token = jwt_helper.encode_access({"sub": USER_ME})

	response = await api_client.get(
		"/search",
		params={"q": "mrossi", "tab": "users"},
		headers={"Authorization": f"Bearer {token}"},
	)

	assert response.status_code == 200
	assert response.json()["users"][0]["uid"] == USER_MARK


@pytest.mark.asyncio
async def test_search_rejects_forged_bearer_token(api_client):
	response = await api_client.get(
		"/search",
		params={"q": "mark"},
		headers={"Authorization": "Bearer not-a-jwt", "X-User-Id": USER_ME},
	)

	assert response.status_code == 401


@pytest.mark.asyncio
async def test_search_rate_limit_returns_429(api_client):
	await _seed()
	settings.search_rate_limit_per_minute = 1

	first = await api_client.get("/search", params={"q": "mark"}, headers={"X-User-Id": USER_ME})
	second = await api_client.get("/search", params={"q": "mark"}, headers={"X-User-Id": USER_ME})

	assert first.status_code == 200
	assert second.status_code == 429
	assert second.json()["detail"] == "rate_limit"
