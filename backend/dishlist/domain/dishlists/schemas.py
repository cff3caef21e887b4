"""Response schemas for the dishlist library."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from dishlist.domain.search.schemas import PersonSummary, CamelModel


class DishListSummaryOut(CamelModel):
	id: str
	title: str
	description: Optional[str] = None
	visibility: str
	is_default: bool = False
	is_pinned: bool = False
	recipe_count: int = 0
	is_owner: bool = False
	is_collaborator: bool = False
	is_following: bool = False
	owner: PersonSummary
	created_at: Optional[datetime] = None
	updated_at: Optional[datetime] = None


class LibraryResponse(CamelModel):
	dish_lists: list[DishListSummaryOut] = Field(default_factory=list)
