"""
Snapstream Backend — Application Package Initializer
====================================================

What: Marks the `snapstream` directory as a Python package.
Who:  Imported by Alembic, pytest, and uvicorn (snapstream.main:app).

Architecture Note:
    This backend follows a layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Visibility rules, validation
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Routes handle status codes and headers but delegate every rule to
    services, which can be tested without HTTP.
"""

__version__ = "1.0.0"
