"""
API Routers Package

This package contains FastAPI routers that handle API endpoints.

Router Structure:
- auth.py: /api/v1/auth/* endpoints (register, magic links, token checks)
- posters.py: /api/v1/posters/me (account deletion)
- bikes.py: /api/v1/bikes/* endpoints
- reviews.py: /api/v1/bikes/*/reviews and /api/v1/reviews/* endpoints
- ratings.py: /api/v1/bikes/*/ratings endpoints

Each router is imported and registered in main.py.
"""

from rottenbikes.routers.auth import router as auth_router
from rottenbikes.routers.bikes import router as bikes_router
from rottenbikes.routers.posters import router as posters_router
from rottenbikes.routers.ratings import router as ratings_router
from rottenbikes.routers.reviews import router as reviews_router

__all__ = [
    "auth_router",
    "bikes_router",
    "posters_router",
    "ratings_router",
    "reviews_router",
]
