"""Scored search results before serialization."""

from __future__ import annotations

from dataclasses import dataclass, replace

from dishlist.domain.catalog import models as catalog


@dataclass(slots=True)
class UserHit:
	user: catalog.UserCandidate
	score: float
	is_following: bool = False
	is_mutual: bool = False

	@property
	def key(self) -> str:
		return self.user.uid


@dataclass(slots=True)
class RecipeHit:
	recipe: catalog.RecipeCandidate
	score: float
	is_saved: bool = False
	is_following_creator: bool = False

	@property
	def key(self) -> str:
		return self.recipe.id


@dataclass(slots=True)
class DishListHit:
	dishlist: catalog.DishListCandidate
	score: float
	is_following: bool = False
	is_collaborator: bool = False

	@property
	def key(self) -> str:
		return self.dishlist.id


def rescaled(hit, factor: float):
	"""Copy of ``hit`` with its score multiplied by ``factor``."""

	return replace(hit, score=hit.score * factor)
