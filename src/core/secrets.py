"""Opaque holder for credentials that must never reach logs or responses."""

from typing import Final

from pydantic import Secret

MASK: Final[str] = "**********"


class SecretValue(Secret[str]):
    """A string that renders as a fixed mask everywhere except ``reveal()``.

    ``repr()``, ``str()``, f-strings and pydantic JSON dumps all show the
    mask. Only connectors call ``reveal()``, at the point a driver needs the
    raw credential.

    Example:
        >>> uri = SecretValue("mysql+aiomysql://app:hunter2@db/app")
        >>> str(uri)
        '**********'
        >>> uri.reveal()
        'mysql+aiomysql://app:hunter2@db/app'
    """

    def _display(self) -> str:
        return MASK

    def reveal(self) -> str:
        """Return the raw secret string."""
        return self.get_secret_value()
