"""Pydantic models and document helpers for principals, clubs, events and audit logs."""
