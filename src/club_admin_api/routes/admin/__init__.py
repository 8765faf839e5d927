"""Administrator endpoints: dashboard, audit log browsing and maintenance, club and event review, account bootstrap."""

from club_admin_api.routes.admin.management import router as management_router
from club_admin_api.routes.admin.routes import router

__all__ = ["management_router", "router"]
