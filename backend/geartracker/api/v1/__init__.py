from fastapi import APIRouter

from . import equipment, health

api_router = APIRouter(prefix="/api")
api_router.include_router(health.router, tags=["health"])
api_router.include_router(equipment.router, prefix="/equipment", tags=["equipment"])

__all__ = ["api_router"]
