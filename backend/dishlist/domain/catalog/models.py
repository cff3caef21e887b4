"""Projections of users, recipes and dishlists consumed by search and listings."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

SAMPLED_RECIPES_PER_DISHLIST = 10

_WHITESPACE = re.compile(r"\s+")


class Visibility(str, Enum):
	PUBLIC = "PUBLIC"
	PRIVATE = "PRIVATE"


class FollowStatus(str, Enum):
	"""A follow edge only counts once the followed user accepted it."""

	PENDING = "PENDING"
	ACCEPTED = "ACCEPTED"


class RecipeItemType(str, Enum):
	ITEM = "item"
	HEADER = "header"


def display_name(first_name: Optional[str], last_name: Optional[str]) -> str:
	return " ".join(part for part in (first_name, last_name) if part)


def normalize_tag(tag: str) -> str:
	"""Tags are stored trimmed, lowercased and with inner whitespace collapsed."""

	return _WHITESPACE.sub(" ", tag.strip().lower())


@dataclass(slots=True)
class RecipeItem:
	"""Structured ingredient/instruction line; headers group the items below them."""

	type: RecipeItemType
	text: str


def item_text(entry: Any) -> Optional[str]:
	"""Extract the text of an ingredient entry stored either as a string or a record."""

	if isinstance(entry, str):
		return entry
	if isinstance(entry, RecipeItem):
		return entry.text if isinstance(entry.text, str) else None
	if isinstance(entry, dict):
		text = entry.get("text")
		return text if isinstance(text, str) else None
	return None


@dataclass(slots=True)
class UserRef:
	uid: str
	username: Optional[str] = None
	first_name: Optional[str] = None
	last_name: Optional[str] = None

	@property
	def display_name(self) -> str:
		return display_name(self.first_name, self.last_name)


@dataclass(slots=True)
class UserCandidate(UserRef):
	avatar_url: Optional[str] = None


@dataclass(slots=True)
class RecipeCandidate:
	id: str
	title: str
	creator: UserRef
	description: Optional[str] = None
	image_url: Optional[str] = None
	prep_time: Optional[int] = None
	cook_time: Optional[int] = None
	servings: Optional[int] = None
	tags: list[str] = field(default_factory=list)
	ingredients: list[Any] = field(default_factory=list)
	updated_at: Optional[datetime] = None

	@property
	def creator_id(self) -> str:
		return self.creator.uid


@dataclass(slots=True)
class CollaboratorRef:
	user_id: str
	first_name: Optional[str] = None
	last_name: Optional[str] = None

	@property
	def display_name(self) -> str:
		return display_name(self.first_name, self.last_name)


@dataclass(slots=True)
class SampledRecipe:
	title: Optional[str]
	ingredients: list[Any] = field(default_factory=list)


@dataclass(slots=True)
class DishListCandidate:
	id: str
	title: str
	owner: UserRef
	description: Optional[str] = None
	visibility: Visibility = Visibility.PUBLIC
	collaborators: list[CollaboratorRef] = field(default_factory=list)
	recipes: list[SampledRecipe] = field(default_factory=list)
	follower_count: int = 0
	recipe_count: int = 0
	updated_at: Optional[datetime] = None

	@property
	def owner_id(self) -> str:
		return self.owner.uid


@dataclass(slots=True, frozen=True)
class SocialContext:
	"""Requester's relationships, loaded once per search request."""

	following_ids: frozenset[str] = frozenset()
	follower_ids: frozenset[str] = frozenset()
	followed_dishlist_ids: frozenset[str] = frozenset()
	saved_recipe_ids: frozenset[str] = frozenset()


@dataclass(slots=True)
class DishListSummary:
	"""A dishlist as it appears in the requester's own library."""

	id: str
	title: str
	owner: UserRef
	description: Optional[str] = None
	visibility: Visibility = Visibility.PUBLIC
	is_default: bool = False
	is_pinned: bool = False
	recipe_count: int = 0
	is_owner: bool = False
	is_collaborator: bool = False
	is_following: bool = False
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None


@dataclass(slots=True)
class MemoryUser(UserCandidate):
	"""In-memory seed structure used by tests and local development."""


@dataclass(slots=True)
class MemoryRecipe:
	id: str
	title: str
	creator_id: str
	description: Optional[str] = None
	image_url: Optional[str] = None
	prep_time: Optional[int] = None
	cook_time: Optional[int] = None
	servings: Optional[int] = None
	tags: list[str] = field(default_factory=list)
	ingredients: list[Any] = field(default_factory=list)
	updated_at: Optional[datetime] = None


@dataclass(slots=True)
class MemoryDishList:
	id: str
	title: str
	owner_id: str
	description: Optional[str] = None
	visibility: Visibility = Visibility.PUBLIC
	is_default: bool = False
	collaborator_ids: list[str] = field(default_factory=list)
	follower_ids: set[str] = field(default_factory=set)
	recipe_ids: list[str] = field(default_factory=list)
	pinned_by: set[str] = field(default_factory=set)
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None
