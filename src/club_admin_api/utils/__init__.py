"""Shared helpers: password and token security, structured logging."""
