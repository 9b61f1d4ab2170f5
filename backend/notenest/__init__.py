"""
NoteNest Backend — Application Package Initializer
===================================================

What: Marks the `notenest` directory as a Python package.
Who:  Imported by uvicorn (`uvicorn notenest.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │     Routes (HTTP + WebSocket)       │  ← request parsing, status codes
    ├─────────────────────────────────────┤
    │     Views (presentation models)     │  ← banner, sidebar, editor, heroes
    ├─────────────────────────────────────┤
    │     Services (business logic)       │  ← documents, files, live queries
    ├─────────────────────────────────────┤
    │     Models & Schemas (data)         │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │     Database (persistence)          │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
