"""
Backend API package initialization.

This package contains the FastAPI router modules of the call center metrics
backend:
- metrics: lead recovery metrics, configured call centers, daily breakdown
"""

from fastapi import APIRouter

from callcenter_metrics.api.metrics import router as metrics_router

# Create main API router
api_router = APIRouter()

api_router.include_router(metrics_router, prefix="/metrics", tags=["metrics"])

__all__ = [
    "api_router",
    "metrics_router",
]
