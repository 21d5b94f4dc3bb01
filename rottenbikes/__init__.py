"""
RottenBikes API Application Package

Backend for reviewing and rating shared bicycles. Posters sign in through
emailed magic links, register bikes, and leave reviews with per-category
scores that are folded into per-bike rating aggregates.

Package Structure:
- config.py: Application configuration using Pydantic Settings
- database.py: SQLAlchemy engine, sessions and the transaction() helper
- exceptions.py: Typed failures raised by the service layer
- main.py: FastAPI application factory and configuration
- dependencies.py: Dependency injection functions
- models/: SQLAlchemy ORM models
- schemas/: Pydantic request/response schemas
- routers/: API route handlers
- services/: Business logic (auth, reviews, ratings, bikes, email)
- utils/: Helper functions
"""

__version__ = "0.1.0"
