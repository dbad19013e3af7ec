"""
Shutterbox Backend — Application Package Initializer
=====================================================

What: REST backend for a photography storefront (accounts, photos, media hosting).
Who:  Imported by uvicorn (shutterbox.main:app), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │   Access Guard (request boundary)   │  ← 401 / 403 before handlers run
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← tokens, credentials, photos
    ├──────────────────┬──────────────────┤
    │  Models/Schemas  │ Upload Providers │  ← SQLAlchemy + Pydantic │ CDN/S3/disk
    ├──────────────────┴──────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Authentication is resolved entirely at the guard layer: handlers only ever
    see an already-verified CurrentIdentity.
"""

__version__ = "1.0.0"
