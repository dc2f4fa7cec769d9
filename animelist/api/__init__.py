from fastapi import APIRouter

from animelist.api.routes import health

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])

__all__ = ["api_router"]
