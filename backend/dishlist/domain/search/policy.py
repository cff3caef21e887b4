"""Tabs, thresholds, limits and rate limiting for search."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from dishlist.infra.rate_limit import allow
from dishlist.obs import metrics as obs_metrics
from dishlist.settings import settings

ALL_TAB_LIMIT = 10
DEFAULT_LIMIT = 20
MAX_LIMIT = 50


class SearchTab(str, Enum):
	ALL = "all"
	USERS = "users"
	RECIPES = "recipes"
	DISHLISTS = "dishlists"

	@classmethod
	def parse(cls, value: Optional[str]) -> Optional["SearchTab"]:
		"""Unknown tabs map to None; callers answer them with empty results."""

		if value is None:
			return cls.ALL
		try:
			return cls(value)
		except ValueError:
			return None


# Minimum total score per (category, tab) before a candidate is returned
USER_THRESHOLD_ALL = 30
USER_THRESHOLD_TAB = 40
RECIPE_THRESHOLD = 30
DISHLIST_THRESHOLD_ALL = 30
DISHLIST_THRESHOLD_TAB = 35


def user_threshold(*, all_tab: bool) -> int:
	return USER_THRESHOLD_ALL if all_tab else USER_THRESHOLD_TAB


def recipe_threshold(*, all_tab: bool) -> int:
	return RECIPE_THRESHOLD


def dishlist_threshold(*, all_tab: bool) -> int:
	return DISHLIST_THRESHOLD_ALL if all_tab else DISHLIST_THRESHOLD_TAB


_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def parse_limit(value: Any) -> int:
	"""Parse the leading integer ("10abc" is 10); junk or zero falls back to the default, then clamp."""

	match = _LEADING_INT.match(str(value))
	parsed = int(match.group(1)) if match else 0
	if parsed == 0:
		parsed = DEFAULT_LIMIT
	return min(max(parsed, 1), MAX_LIMIT)


@dataclass(slots=True)
class SearchPolicyError(Exception):
	detail: str
	status_code: int = 400

	def __str__(self) -> str:  # pragma: no cover - debugging aid
		return self.detail


class SearchRateLimitError(SearchPolicyError):
	def __init__(self) -> None:
		super().__init__(detail="rate_limit", status_code=429)


class SearchUnavailableError(SearchPolicyError):
	"""A data-store read failed; no partial results are returned."""

	def __init__(self) -> None:
		super().__init__(detail="search_failed", status_code=500)


async def enforce_rate_limit(user_id: str, *, kind: str = "search", limit: Optional[int] = None) -> None:
	"""Ensure the caller remains within the configured budget."""

	budget = settings.search_rate_limit_per_minute if limit is None else limit
	allowed = await allow(kind, user_id, limit=budget)
	if not allowed:
		obs_metrics.inc_rate_limited(kind)
		raise SearchRateLimitError()
