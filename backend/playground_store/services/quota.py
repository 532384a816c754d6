"""
Per-user quota guard for projects and files.

Design decisions:
  • Check BEFORE insert: a rejected creation draws no identifier and
    attempts no write.
  • Counts go through the owner join, so the caller's identity is all that
    is needed.
  • Best effort: the count and the later INSERT are separate statements,
    so two concurrent creations can both pass at count == limit - 1.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from playground_store.auth.identity import CallerIdentity, owned_by
from playground_store.core.errors import QuotaExceeded
from playground_store.models.file import File
from playground_store.models.project import Project
from playground_store.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_QUOTA = 100


async def count_projects(session: AsyncSession, identity: CallerIdentity) -> int:
    stmt = (
        select(func.count())
        .select_from(Project)
        .join(User, User.id == Project.owner_id)
        .where(owned_by(identity))
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def count_files(session: AsyncSession, identity: CallerIdentity) -> int:
    stmt = (
        select(func.count())
        .select_from(File)
        .join(Project, Project.id == File.project_id)
        .join(User, User.id == Project.owner_id)
        .where(owned_by(identity))
    )
    result = await session.execute(stmt)
    return result.scalar_one()


async def check_project_quota(
    session: AsyncSession,
    identity: CallerIdentity,
    limit: int = DEFAULT_QUOTA,
) -> bool:
    """True while the caller owns fewer than `limit` projects."""
    return await count_projects(session, identity) < limit


async def check_file_quota(
    session: AsyncSession,
    identity: CallerIdentity,
    limit: int = DEFAULT_QUOTA,
) -> bool:
    """True while the caller owns fewer than `limit` files across all projects."""
    return await count_files(session, identity) < limit


async def enforce_project_quota(
    session: AsyncSession,
    identity: CallerIdentity,
    limit: int = DEFAULT_QUOTA,
) -> None:
    if not await check_project_quota(session, identity, limit):
        logger.info("Project quota reached for %s/%s", identity.provider, identity.external_id)
        raise QuotaExceeded(f"You can't save more than {limit} projects")


async def enforce_file_quota(
    session: AsyncSession,
    identity: CallerIdentity,
    limit: int = DEFAULT_QUOTA,
) -> None:
    if not await check_file_quota(session, identity, limit):
        logger.info("File quota reached for %s/%s", identity.provider, identity.external_id)
        raise QuotaExceeded(f"You can't save more than {limit} files")
