import pytest

from dishlist.domain.search import policy


@pytest.mark.parametrize(
	("raw", "expected"),
	[
		("7", 7),
		(None, 20),
		("", 20),
		("abc", 20),
		("0", 20),
		("-5", 1),
		("500", 50),
		(" 12 ", 12),
		("10abc", 10),
		("7 items", 7),
		("2.9", 2),
	],
)
def test_parse_limit(raw, expected):
	assert policy.parse_limit(raw) == expected


def test_tab_parsing():
	assert policy.SearchTab.parse("recipes") is policy.SearchTab.RECIPES
	assert policy.SearchTab.parse(None) is policy.SearchTab.ALL
	assert policy.SearchTab.parse("people") is None


def test_thresholds_by_tab():
	assert policy.user_threshold(all_tab=True) == 30
	assert policy.user_threshold(all_tab=False) == 40
	assert policy.recipe_threshold(all_tab=True) == policy.recipe_threshold(all_tab=False) == 30
	assert policy.dishlist_threshold(all_tab=True) == 30
	assert policy.dishlist_threshold(all_tab=False) == 35


def test_policy_errors_carry_status():
	assert policy.SearchRateLimitError().status_code == 429
	unavailable = policy.SearchUnavailableError()
	assert (unavailable.status_code, unavailable.detail) == (500, "search_failed")
