"""
API package initialization.

This package contains FastAPI router modules for the sales conversion dashboard:
- funnel: Branch list and conversion funnel report
- notes: Follow-up notes for pending customers
"""

from fastapi import APIRouter

from salesboard.api.funnel import router as funnel_router
from salesboard.api.notes import router as notes_router

# Create main API router
api_router = APIRouter()

api_router.include_router(funnel_router)  # has its own /branches prefix
api_router.include_router(notes_router)  # has its own /branches prefix

__all__ = [
    "api_router",
    "funnel_router",
    "notes_router",
]
