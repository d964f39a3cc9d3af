"""API package - FastAPI routes, dependencies and error handlers."""
