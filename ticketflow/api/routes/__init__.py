"""API Routes module"""
from fastapi import APIRouter

from .tickets import router as tickets_router
from .permissions import router as permissions_router

# Main API router
api_router = APIRouter()

api_router.include_router(tickets_router, prefix="/tickets", tags=["Tickets"])
api_router.include_router(permissions_router, prefix="/permissions", tags=["Permissions"])

__all__ = ["api_router"]
