"""Business services used by the route handlers."""
