"""FastAPI application for administering the query cache."""
