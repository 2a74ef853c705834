"""API route exports."""

from .meetings import router as meetings_router

__all__ = ["meetings_router"]
