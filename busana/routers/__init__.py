"""API routers for Busana."""

from busana.routers import import_history, import_router

__all__ = ["import_history", "import_router"]
