"""Relevance scoring for users, recipes and dishlists.

Every text field is scored by ``text_score`` against a four-tier weight table;
only the best tier applies per field. Field scores are summed before any
boost is added. On the combined "all" tab social boosts are gated on the text
score, so a followed but unrelated entity cannot outrank a strong textual
match.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from dishlist.domain.catalog import models as catalog
from dishlist.domain.search import models


@dataclass(frozen=True, slots=True)
class TextWeights:
	exact: float
	starts_with: float
	word_match: float
	contains: float


USER_NAME_WEIGHTS = TextWeights(100, 90, 80, 60)
USER_USERNAME_WEIGHTS = TextWeights(100, 70, 65, 50)

RECIPE_TITLE_WEIGHTS = TextWeights(100, 90, 80, 60)
RECIPE_TAG_WEIGHTS = TextWeights(50, 40, 35, 25)
RECIPE_TOP_INGREDIENT_WEIGHTS = TextWeights(45, 40, 35, 25)
RECIPE_INGREDIENT_WEIGHTS = TextWeights(25, 20, 18, 12)
RECIPE_DESCRIPTION_WEIGHTS = TextWeights(25, 20, 18, 15)
RECIPE_CREATOR_WEIGHTS = TextWeights(20, 15, 12, 8)

DISHLIST_TITLE_WEIGHTS = TextWeights(100, 90, 80, 60)
DISHLIST_OWNER_NAME_WEIGHTS = TextWeights(60, 50, 45, 35)
DISHLIST_OWNER_USERNAME_WEIGHTS = TextWeights(55, 45, 40, 30)
DISHLIST_COLLABORATOR_WEIGHTS = TextWeights(35, 30, 25, 20)
DISHLIST_RECIPE_TITLE_WEIGHTS = TextWeights(35, 30, 25, 18)
DISHLIST_INGREDIENT_WEIGHTS = TextWeights(30, 25, 20, 15)
DISHLIST_DESCRIPTION_WEIGHTS = TextWeights(25, 20, 18, 15)

# Ingredient positions below this use the top-ingredient weights
TOP_INGREDIENT_POSITIONS = 3

# "all" tab: social boosts need this much text relevance first
SOCIAL_GATE_SCORE = 50
ALL_TAB_SOCIAL_CAP = 10

USER_MUTUAL_BOOST_ALL = 20
USER_FOLLOWING_BOOST_ALL = 15
USER_MUTUAL_BOOST_TAB = 40
USER_FOLLOWING_BOOST_TAB = 30

RECIPE_SAVED_BOOST_ALL = 10
RECIPE_CREATOR_BOOST_ALL = 6
RECIPE_SAVED_BOOST_TAB = 15
RECIPE_CREATOR_BOOST_TAB = 10

DISHLIST_FOLLOWING_BOOST_ALL = 10
DISHLIST_OWNER_BOOST_ALL = 8
DISHLIST_FOLLOWING_BOOST_TAB = 20

POPULARITY_MAX_BOOST = 15
RECENCY_MAX_BOOST = 5
RECENCY_WINDOW_DAYS = 30


def text_score(query: str, text: Any, weights: TextWeights) -> float:
	"""Return the weight of the best matching tier, or 0.

	Case-insensitive, both sides trimmed. Non-string fields never match.
	"""

	if not isinstance(text, str) or not text:
		return 0
	normalized_query = query.strip().lower()
	normalized_text = text.strip().lower()
	if not normalized_query:
		return 0
	if normalized_text == normalized_query:
		return weights.exact
	if normalized_text.startswith(normalized_query):
		return weights.starts_with
	if re.search(rf"\b{re.escape(normalized_query)}\b", normalized_text):
		return weights.word_match
	if normalized_query in normalized_text:
		return weights.contains
	return 0


def best_text_score(query: str, texts: Iterable[Any], weights: TextWeights) -> float:
	return max((text_score(query, text, weights) for text in texts), default=0)


def popularity_boost(count: Any, max_boost: float) -> float:
	"""Logarithmic boost from a follower count, capped at ``max_boost``."""

	if not isinstance(count, (int, float)) or count <= 0:
		return 0.0
	return min(max_boost, math.log10(count + 1) * 3)


def recency_boost(updated_at: Any, max_boost: float, *, now: Optional[datetime] = None) -> float:
	"""Linear decay from ``max_boost`` at update time to 0 after the window."""

	if not isinstance(updated_at, datetime):
		return 0.0
	now = now or datetime.now(timezone.utc)
	if now.tzinfo is None:
		now = now.replace(tzinfo=timezone.utc)
	if updated_at.tzinfo is None:
		# Timestamps without a zone are stored in UTC
		updated_at = updated_at.replace(tzinfo=timezone.utc)
	days_since = max(0.0, (now - updated_at).total_seconds() / 86400.0)
	if days_since >= RECENCY_WINDOW_DAYS:
		return 0.0
	return max_boost * (1 - days_since / RECENCY_WINDOW_DAYS)


def _entries(value: Any) -> list[Any]:
	return list(value) if isinstance(value, (list, tuple)) else []


def score_user(
	user: catalog.UserCandidate,
	query: str,
	social: catalog.SocialContext,
	*,
	all_tab: bool,
) -> models.UserHit:
	score = text_score(query, user.display_name, USER_NAME_WEIGHTS)
	score += text_score(query, user.username, USER_USERNAME_WEIGHTS)

	is_following = user.uid in social.following_ids
	is_mutual = is_following and user.uid in social.follower_ids

	if all_tab:
		if score >= SOCIAL_GATE_SCORE:
			if is_mutual:
				score += USER_MUTUAL_BOOST_ALL
			elif is_following:
				score += USER_FOLLOWING_BOOST_ALL
	elif is_mutual:
		score += USER_MUTUAL_BOOST_TAB
	elif is_following:
		score += USER_FOLLOWING_BOOST_TAB

	return models.UserHit(user=user, score=float(score), is_following=is_following, is_mutual=is_mutual)


def _recipe_ingredient_score(query: str, ingredients: Any) -> float:
	best = 0
	for position, entry in enumerate(_entries(ingredients)):
		weights = RECIPE_TOP_INGREDIENT_WEIGHTS if position < TOP_INGREDIENT_POSITIONS else RECIPE_INGREDIENT_WEIGHTS
		best = max(best, text_score(query, catalog.item_text(entry), weights))
	return best


def score_recipe(
	recipe: catalog.RecipeCandidate,
	query: str,
	social: catalog.SocialContext,
	*,
	all_tab: bool,
	now: Optional[datetime] = None,
) -> models.RecipeHit:
	score = text_score(query, recipe.title, RECIPE_TITLE_WEIGHTS)
	score += best_text_score(query, _entries(recipe.tags), RECIPE_TAG_WEIGHTS)
	score += _recipe_ingredient_score(query, recipe.ingredients)
	score += text_score(query, recipe.description, RECIPE_DESCRIPTION_WEIGHTS)
	score += text_score(query, recipe.creator.display_name, RECIPE_CREATOR_WEIGHTS)

	is_saved = recipe.id in social.saved_recipe_ids
	follows_creator = recipe.creator_id in social.following_ids

	if all_tab:
		if score >= SOCIAL_GATE_SCORE:
			boost = 0
			if is_saved:
				boost += RECIPE_SAVED_BOOST_ALL
			if follows_creator:
				boost += RECIPE_CREATOR_BOOST_ALL
			score += min(ALL_TAB_SOCIAL_CAP, boost)
	else:
		if is_saved:
			score += RECIPE_SAVED_BOOST_TAB
		if follows_creator:
			score += RECIPE_CREATOR_BOOST_TAB

	score += recency_boost(recipe.updated_at, RECENCY_MAX_BOOST, now=now)

	return models.RecipeHit(
		recipe=recipe,
		score=float(score),
		is_saved=is_saved,
		is_following_creator=follows_creator,
	)


def _dishlist_ingredient_score(query: str, recipes: list[catalog.SampledRecipe]) -> float:
	# Stops at the first sampled recipe with any ingredient match, even if a
	# later recipe would match better.
	for recipe in recipes:
		best = best_text_score(
			query,
			(catalog.item_text(entry) for entry in _entries(getattr(recipe, "ingredients", None))),
			DISHLIST_INGREDIENT_WEIGHTS,
		)
		if best > 0:
			return best
	return 0


def score_dishlist(
	dishlist: catalog.DishListCandidate,
	query: str,
	requester_id: str,
	social: catalog.SocialContext,
	*,
	all_tab: bool,
	now: Optional[datetime] = None,
) -> models.DishListHit:
	collaborators = _entries(dishlist.collaborators)
	recipes = _entries(dishlist.recipes)

	score = text_score(query, dishlist.title, DISHLIST_TITLE_WEIGHTS)
	score += text_score(query, dishlist.owner.display_name, DISHLIST_OWNER_NAME_WEIGHTS)
	score += text_score(query, dishlist.owner.username, DISHLIST_OWNER_USERNAME_WEIGHTS)
	score += best_text_score(
		query,
		(collaborator.display_name for collaborator in collaborators),
		DISHLIST_COLLABORATOR_WEIGHTS,
	)
	score += best_text_score(
		query,
		(getattr(recipe, "title", None) for recipe in recipes),
		DISHLIST_RECIPE_TITLE_WEIGHTS,
	)
	score += _dishlist_ingredient_score(query, recipes)
	score += text_score(query, dishlist.description, DISHLIST_DESCRIPTION_WEIGHTS)

	is_following = dishlist.id in social.followed_dishlist_ids
	is_collaborator = any(collaborator.user_id == requester_id for collaborator in collaborators)
	follows_owner = dishlist.owner_id in social.following_ids

	if all_tab:
		if score >= SOCIAL_GATE_SCORE:
			boost = 0
			if is_following:
				boost += DISHLIST_FOLLOWING_BOOST_ALL
			if follows_owner:
				boost += DISHLIST_OWNER_BOOST_ALL
			score += min(ALL_TAB_SOCIAL_CAP, boost)
	elif is_following:
		score += DISHLIST_FOLLOWING_BOOST_TAB

	if score >= SOCIAL_GATE_SCORE or not all_tab:
		score += popularity_boost(dishlist.follower_count, POPULARITY_MAX_BOOST)

	score += recency_boost(dishlist.updated_at, RECENCY_MAX_BOOST, now=now)

	return models.DishListHit(
		dishlist=dishlist,
		score=float(score),
		is_following=is_following,
		is_collaborator=is_collaborator,
	)
