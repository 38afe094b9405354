"""FastAPI application over the scoring engine and data sources."""
