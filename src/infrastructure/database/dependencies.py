"""FastAPI dependency injection for relational sessions.

Sessions are opened against the pool held by ``ServiceState``; the request
commits on success and rolls back on error.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import Services
from src.infrastructure.database.repository import UserRepository
from src.infrastructure.database.session import session_scope


async def get_db(services: Services) -> AsyncGenerator[AsyncSession]:
    """Provide a relational session for the current request.

    Yields:
        AsyncSession: Session bound to the shared relational pool.

    Example:
        @router.get("/users")
        async def list_users(db: DatabaseSession): ...
    """
    async with session_scope(services.relational_pool) as session:
        yield session


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]


def get_user_repository(db: DatabaseSession) -> UserRepository:
    """Provide a user repository bound to the request session."""
    return UserRepository(db)


Users = Annotated[UserRepository, Depends(get_user_repository)]
