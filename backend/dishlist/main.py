"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dishlist.api import dishlists, ops, search
from dishlist.api.errors import install_error_handlers
from dishlist.infra import postgres
from dishlist.obs import init as obs_init
from dishlist.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	if settings.search_backend.lower() != "memory":
		pool = await postgres.pool_or_none()
		if pool is None:
			logger.warning("Postgres unavailable at startup; requests fail until it is reachable")
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="DishList API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else ["https://app.dishlist.example"]

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	if settings.is_dev():
		allow_origins = [
			"http://localhost:3000",
			"http://127.0.0.1:3000",
			"http://localhost:5173",
			"http://127.0.0.1:5173",
		]
	else:
		allow_origins = ["https://app.dishlist.example"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

obs_init(app)

app.include_router(search.router, tags=["search"])
app.include_router(dishlists.router, tags=["dishlists"])
app.include_router(ops.router, tags=["ops"])
