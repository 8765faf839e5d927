"""Authentication endpoints and the access control dependencies shared by every router."""

from club_admin_api.routes.auth.routes import router

__all__ = ["router"]
