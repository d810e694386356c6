"""Relational models."""

import uuid

from sqlalchemy import CHAR, String
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.base import Base

UUID_LENGTH = 36
EMAIL_MAX_LENGTH = 255
NAME_MAX_LENGTH = 100


def generate_user_id() -> str:
    """Return a new UUID4 in its 36 character text form."""
    return str(uuid.uuid4())


class User(Base):
    """A row of the ``users`` table.

    The identifier is stored as text so the table stays portable across
    MySQL versions without a native UUID type.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        CHAR(UUID_LENGTH),
        primary_key=True,
        default=generate_user_id,
        doc="UUID4 primary key",
    )
    email: Mapped[str] = mapped_column(String(EMAIL_MAX_LENGTH), nullable=False)
    name: Mapped[str | None] = mapped_column(String(NAME_MAX_LENGTH), nullable=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id})>"
