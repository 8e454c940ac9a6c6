"""Main API router — aggregates all endpoint modules."""

from fastapi import APIRouter

from prompt_arena.api.execute import router as execute_router
from prompt_arena.api.providers import router as providers_router

api_router = APIRouter()

api_router.include_router(execute_router, tags=["execution"])
api_router.include_router(providers_router, tags=["providers"])
