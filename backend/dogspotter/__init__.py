"""
Dog Spotter Backend — Application Package
==========================================

What: REST backend for a lost/found dog registry: user accounts, geolocated
      sighting records, image upload and JWT authentication.
Who:  Imported by uvicorn (`dogspotter.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← search, ownership, enrichment
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Services are constructed once in `create_app()` with their collaborators
    (breed predictor, storage root) and handed to routes through FastAPI
    dependencies. Database sessions are still opened per request.
"""

__version__ = "1.0.0"
