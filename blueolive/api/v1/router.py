"""
Router assembly for the public API (mounted under /api/v1) and the worker
callback (mounted at the root).
"""

from fastapi import APIRouter

from blueolive.api.v1.endpoints import analysis, worker
from blueolive.api.v1.endpoints.iam import users

# Endpoints manage their own auth (most accept anonymous callers)
api_router = APIRouter()
api_router.include_router(analysis.upload_router, tags=["upload"])
api_router.include_router(analysis.router, prefix="/analysis", tags=["analysis"])
api_router.include_router(users.router, prefix="/auth", tags=["auth"])

worker_router = APIRouter()
worker_router.include_router(worker.router, prefix="/worker", tags=["worker"])
