"""
API router combining all endpoints.
"""
from fastapi import APIRouter
from app.api.v1 import health, session

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(session.router, prefix="/session", tags=["sessions"])
