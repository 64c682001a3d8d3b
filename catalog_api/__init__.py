"""Catalog consistency engine: REST API, ORM models, repositories and domain services."""
