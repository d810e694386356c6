"""Repository pattern implementation for relational operations.

Every query runs inside ``translate_errors(RelationalStoreError)``, which is
the single place driver exceptions become taxonomy members for this store.
"""

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import RelationalStoreError
from src.infrastructure.database.base import Base
from src.infrastructure.database.models import User
from src.infrastructure.errors import translate_errors


class BaseRepository[T: Base]:
    """Common async operations for a model keyed by a string ``id``.

    Args:
        session: The async SQLAlchemy session to use for operations.
        model_class: The SQLAlchemy model class this repository manages.

    Example:
        class UserRepository(BaseRepository[User]):
            def __init__(self, session: AsyncSession) -> None:
                super().__init__(session, User)
    """

    def __init__(self, session: AsyncSession, model_class: type[T]) -> None:
        self.session = session
        self.model_class = model_class

    async def get_by_id(self, entity_id: str) -> T | None:
        """Retrieve a model instance by its ID.

        Args:
            entity_id: The primary key of the row to retrieve.

        Returns:
            T | None: The model instance if found, None otherwise.
        """
        with translate_errors(RelationalStoreError):
            return await self.session.get(self.model_class, entity_id)

    async def list_all(self) -> list[T]:
        """Retrieve every row of the table.

        Returns:
            list[T]: All model instances.
        """
        with translate_errors(RelationalStoreError):
            result = await self.session.execute(select(self.model_class))
            instances = list(result.scalars().all())

        logger.debug(
            "Retrieved {} {} instances", len(instances), self.model_class.__name__
        )
        return instances

    async def create(self, obj: T) -> T:
        """Insert a new row.

        Args:
            obj: The model instance to insert.

        Returns:
            T: The inserted instance with client-side defaults populated.
        """
        with translate_errors(RelationalStoreError):
            self.session.add(obj)
            await self.session.flush()

        logger.info("Created {} instance", self.model_class.__name__)
        return obj

    async def commit(self) -> None:
        """Commit the session so the caller sees durable writes."""
        with translate_errors(RelationalStoreError):
            await self.session.commit()


class UserRepository(BaseRepository[User]):
    """Access to the ``users`` table."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def add(self, email: str, name: str | None) -> User:
        """Insert a user and read the stored row back.

        Args:
            email: Validated email address.
            name: Optional display name.

        Returns:
            User: The stored row, including its generated id.
        """
        user = await self.create(User(email=email, name=name))
        stored = await self.get_by_id(user.id)
        if stored is None:
            msg = f"user {user.id} missing after insert"
            raise RelationalStoreError(msg)
        return stored
