"""REST endpoint listing the requester's dishlist library."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from dishlist.api.deps import get_library_store
from dishlist.domain.catalog.store import CatalogStore
from dishlist.domain.dishlists import DishListLibraryService, schemas
from dishlist.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["dishlists"])


async def get_library_service(store: CatalogStore = Depends(get_library_store)) -> DishListLibraryService:
	return DishListLibraryService(store)


@router.get("/dishlists", response_model=schemas.LibraryResponse)
async def list_dishlists_endpoint(
	tab: Optional[str] = Query(default="all", description="all | my | collaborations | following"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: DishListLibraryService = Depends(get_library_service),
) -> schemas.LibraryResponse:
	return await service.list_for(auth_user, tab)
