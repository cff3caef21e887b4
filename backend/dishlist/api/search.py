"""REST endpoint for the unified search box."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from dishlist.api.deps import get_catalog_store
from dishlist.domain.catalog.store import CatalogStore
from dishlist.domain.search import policy, schemas
from dishlist.domain.search.service import SearchService
from dishlist.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["search"])


async def get_search_service(store: Optional[CatalogStore] = Depends(get_catalog_store)) -> SearchService:
	return SearchService(store)


def _as_http_error(exc: Exception) -> HTTPException:
	if isinstance(exc, policy.SearchPolicyError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	return HTTPException(status_code=400, detail=str(exc))


@router.get("/search", response_model=schemas.SearchResponse)
async def search_endpoint(
	query: schemas.SearchQuery = Depends(),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: SearchService = Depends(get_search_service),
) -> schemas.SearchResponse:
	try:
		return await service.search(auth_user, query)
	except policy.SearchPolicyError as exc:
		raise _as_http_error(exc) from exc
