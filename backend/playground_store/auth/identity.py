"""
Caller identity and owner-scoped lookups.

AUTHORIZATION MODEL:
  The store never checks ownership with a separate "may I?" query. Every
  owner-scoped read and every mutating statement carries owned_by(identity)
  (or owned_project_ids(identity)) in its WHERE clause, so a statement
  simply matches nothing when the target belongs to someone else. A missing
  row and a foreign row are therefore the same outcome: NotFound.

Flow for a mutating operation:
  1. resolve_owner_key / resolve_project_key / resolve_file_key
  2. the write itself, again scoped by the caller's identity
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import ColumnElement, Select, and_, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from playground_store.core.errors import NotFound, is_unique_violation
from playground_store.models.file import File
from playground_store.models.project import Project
from playground_store.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    """Identity of the caller, as produced by the sign-in layer.

    Attributes:
        external_id:  Id assigned by the sign-in provider.
        provider:     Provider name ("google", "github", ...).
        display_name: Human-readable name, stored on first sign-in only.
    """

    external_id: str
    provider: str
    display_name: str = ""

    def describe(self) -> str:
        """Context string for diagnostics records."""
        return f"user_id {self.external_id}, client_type {self.provider}, name {self.display_name}"


# ── Authorization clauses ───────────────────────────────────
def owned_by(identity: CallerIdentity) -> ColumnElement[bool]:
    """WHERE clause matching the caller's users row."""
    return and_(
        User.client_id == identity.external_id,
        User.provider == identity.provider,
    )


def owned_project_ids(identity: CallerIdentity) -> Select[tuple[int]]:
    """Sub-select of project keys owned by the caller."""
    return (
        select(Project.id)
        .join(User, Project.owner_id == User.id)
        .where(owned_by(identity))
    )


# ── Lookups ─────────────────────────────────────────────────
async def find_owner_key(session: AsyncSession, identity: CallerIdentity) -> int | None:
    stmt = select(User.id).where(owned_by(identity))
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def resolve_owner_key(session: AsyncSession, identity: CallerIdentity) -> int:
    """Return the caller's internal key. Raises NotFound for unregistered callers."""
    owner_key = await find_owner_key(session, identity)
    if owner_key is None:
        raise NotFound(f"User with id {identity.external_id} doesn't exist")
    return owner_key


async def ensure_user(session: AsyncSession, identity: CallerIdentity) -> int:
    """
    Insert the caller's users row unless it already exists.

    Returns the internal key either way. If a concurrent sign-in inserts the
    same (client_id, provider) first, the uniqueness violation is absorbed
    and the winner's row is read back.
    """
    owner_key = await find_owner_key(session, identity)
    if owner_key is not None:
        return owner_key

    stmt = insert(User).values(
        client_id=identity.external_id,
        provider=identity.provider,
        username=identity.display_name,
    )
    try:
        await session.execute(stmt)
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        if not is_unique_violation(exc):
            raise
        logger.info("User %s/%s registered concurrently", identity.provider, identity.external_id)
    else:
        logger.info("Registered user %s/%s", identity.provider, identity.external_id)

    return await resolve_owner_key(session, identity)


async def resolve_project_key(
    session: AsyncSession,
    identity: CallerIdentity,
    project_public_id: str,
) -> int:
    """Internal key of a project the caller owns. NotFound otherwise."""
    stmt = (
        select(Project.id)
        .join(User, Project.owner_id == User.id)
        .where(owned_by(identity), Project.public_id == project_public_id)
    )
    result = await session.execute(stmt)
    project_key = result.scalar_one_or_none()
    if project_key is None:
        raise NotFound(f"Project {project_public_id} doesn't exist")
    return project_key


async def resolve_file_key(
    session: AsyncSession,
    identity: CallerIdentity,
    file_public_id: str,
) -> int:
    """Internal key of a file inside a project the caller owns. NotFound otherwise."""
    stmt = select(File.id).where(
        File.public_id == file_public_id,
        File.project_id.in_(owned_project_ids(identity)),
    )
    result = await session.execute(stmt)
    file_key = result.scalar_one_or_none()
    if file_key is None:
        raise NotFound(f"File {file_public_id} doesn't exist")
    return file_key
