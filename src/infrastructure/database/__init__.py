"""Relational store access with SQLAlchemy 2.0 asyncio over aiomysql.

Core components:
- **base**: Declarative base with constraint naming conventions
- **models**: The ``users`` table
- **session**: Pool creation (the startup connector) and session scopes
- **repository**: Repositories whose queries translate driver errors
- **dependencies**: FastAPI dependency injection helpers
"""
