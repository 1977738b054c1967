"""
DevCamper Backend — Application Package
=========================================

What: REST API for coding bootcamps and their courses.
Who:  Imported by uvicorn (devcamper.main:app), the seeder CLI and pytest.

Layering:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← query strings, status codes
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← list pipeline, geocoding, slugs
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
