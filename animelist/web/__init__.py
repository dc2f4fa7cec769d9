from fastapi import APIRouter

from animelist.web import anime, auth

router = APIRouter()
router.include_router(auth.router)
router.include_router(anime.router)

__all__ = ["router"]
