"""API routers mounted by the application under `/api`."""
