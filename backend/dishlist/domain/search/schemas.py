"""Pydantic schemas for the search API. Responses serialize with camelCase keys."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SearchQuery(BaseModel):
	q: str = Field(default="", description="Raw user input; empty means nothing to search yet")
	tab: str = Field(default="all", description="all | users | recipes | dishlists")
	cursor: Optional[str] = Field(default=None, description="Id of the last result of the previous page")
	limit: Optional[str] = Field(default="20", description="Page size for dedicated tabs")

	def normalized_query(self) -> str:
		return self.q.strip()


class PersonSummary(CamelModel):
	uid: str
	username: Optional[str] = None
	first_name: Optional[str] = None
	last_name: Optional[str] = None


class ScoredUser(CamelModel):
	uid: str
	username: Optional[str] = None
	first_name: Optional[str] = None
	last_name: Optional[str] = None
	avatar_url: Optional[str] = None
	is_following: bool = False
	is_mutual: bool = False
	score: float


class ScoredRecipe(CamelModel):
	id: str
	title: str
	description: Optional[str] = None
	image_url: Optional[str] = None
	prep_time: Optional[int] = None
	cook_time: Optional[int] = None
	servings: Optional[int] = None
	tags: list[str] = Field(default_factory=list)
	creator: PersonSummary
	is_saved: bool = False
	score: float


class ScoredDishList(CamelModel):
	id: str
	title: str
	description: Optional[str] = None
	visibility: str
	owner: PersonSummary
	recipe_count: int = 0
	follower_count: int = 0
	is_following: bool = False
	is_collaborator: bool = False
	score: float


class SearchResponse(CamelModel):
	users: list[ScoredUser] = Field(default_factory=list)
	recipes: list[ScoredRecipe] = Field(default_factory=list)
	dish_lists: list[ScoredDishList] = Field(default_factory=list)
	next_cursor: Optional[str] = None
