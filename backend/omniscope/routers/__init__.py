"""API routers for the OmniScope intelligence backend."""

from .fathom import router as fathom_router

__all__ = ["fathom_router"]
