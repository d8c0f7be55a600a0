"""API route modules."""

from .connections import router as connections_router
from .entry import router as entry_router
from .sso import router as sso_router

__all__ = ["connections_router", "entry_router", "sso_router"]
