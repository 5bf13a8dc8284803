"""API routes package."""

from vault.routes.auth_routes import router as auth_router
from vault.routes.file_routes import router as file_router
from vault.routes.share_routes import router as share_router

__all__ = ["auth_router", "file_router", "share_router"]
