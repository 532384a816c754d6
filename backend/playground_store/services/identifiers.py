"""
Public identifier generation for projects and files.

Notes:
  • Each id is 130 bits from the `secrets` CSPRNG, written in base 32 with
    the digits 0-9a-v and no padding (up to 26 characters).
  • next_*_id() keeps drawing until the id is absent from its table. With
    130 bits the loop body runs once in practice, but the contract is
    "verified unique at call time", not "assumed unique".
  • The check and the later INSERT are not atomic. The unique index on
    public_id has the final word; mutations regenerate on a lost race.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from playground_store.models.file import File
from playground_store.models.project import Project

logger = logging.getLogger(__name__)

ID_BITS = 130
_BASE32_DIGITS = "0123456789abcdefghijklmnopqrstuv"


def to_base32(value: int) -> str:
    """Render a non-negative integer in base 32 (0-9a-v)."""
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 32)
        digits.append(_BASE32_DIGITS[remainder])
    return "".join(reversed(digits))


def random_public_id() -> str:
    """Draw one candidate identifier."""
    return to_base32(secrets.randbits(ID_BITS))


class IdentifierGenerator:
    """Generate-and-verify allocator for project and file public ids."""

    def __init__(self, token_source: Callable[[], str] = random_public_id) -> None:
        self._token_source = token_source

    async def next_project_id(self, session: AsyncSession) -> str:
        return await self._next_id(session, Project.public_id)

    async def next_file_id(self, session: AsyncSession) -> str:
        return await self._next_id(session, File.public_id)

    async def _next_id(
        self,
        session: AsyncSession,
        column: InstrumentedAttribute[str],
    ) -> str:
        while True:
            candidate = self._token_source()
            if not await is_public_id_taken(session, column, candidate):
                return candidate
            logger.warning("Public id collision on %s, drawing again", column)


async def is_public_id_taken(
    session: AsyncSession,
    column: InstrumentedAttribute[str],
    public_id: str,
) -> bool:
    stmt = select(func.count()).where(column == public_id)
    result = await session.execute(stmt)
    return result.scalar_one() > 0
