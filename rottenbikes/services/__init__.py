"""
Services Package

This package contains business logic services that are:
- Separate from HTTP handling (routers)
- Reusable across different parts of the application (API, scripts)
- Easier to test in isolation

Current services:
- auth.py: Registration, magic links and API token verification
- bikes.py: Bike catalogue CRUD
- email.py: Email senders (Mailtrap, logging) and magic link messages
- posters.py: Account deletion
- rate_limiter.py: Per-IP request limiting with slowapi
- ratings.py: Rating aggregate rebuilds and reads
- reviews.py: Reviews with per-subcategory scores
"""
