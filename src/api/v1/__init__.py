"""Version 1 of the public API."""

from fastapi import APIRouter

from src.api.v1.users import router as users_router

router = APIRouter()
router.include_router(users_router)

__all__ = ["router"]
