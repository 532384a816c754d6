"""
Read operations on projects and files.

Reads return None / False for "not found" and raise UnknownStoreError for
anything else (after recording it at the diagnostics sink).

get_project() is two reads, project row then files, without a shared
snapshot: a file added or removed in between may or may not show up.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from playground_store.auth.identity import CallerIdentity, owned_by
from playground_store.core.database import Database
from playground_store.core.diagnostics import DiagnosticsSink, safe_record
from playground_store.core.errors import UnknownStoreError
from playground_store.models.file import File
from playground_store.models.project import Project
from playground_store.models.user import User
from playground_store.schemas.project import (
    ProjectFileRead,
    ProjectHeader,
    ProjectRead,
)
from playground_store.services.encoding import ReadOnlyListSerializer, unescape

logger = logging.getLogger(__name__)


class ProjectQueries:
    """Single round-trip reads (except get_project, which needs two)."""

    def __init__(
        self,
        database: Database,
        diagnostics: DiagnosticsSink,
        serializer: ReadOnlyListSerializer | None = None,
    ) -> None:
        self._db = database
        self._diagnostics = diagnostics
        self._serializer = serializer or ReadOnlyListSerializer()

    async def list_project_headers(self, identity: CallerIdentity) -> list[ProjectHeader]:
        """Name + public id of every project the caller owns."""
        async with self._read(
            "list_projects", identity.describe(), "Unknown error while loading list of your programs",
        ) as session:
            stmt = (
                select(Project.public_id, Project.name)
                .join(User, Project.owner_id == User.id)
                .where(owned_by(identity))
                .order_by(Project.id)
            )
            rows = (await session.execute(stmt)).all()

        return [ProjectHeader(name=unescape(row.name), public_id=row.public_id) for row in rows]

    async def get_project(self, public_id: str) -> ProjectRead | None:
        async with self._read(
            "get_project", public_id, "Unknown error while loading your project",
        ) as session:
            result = await session.execute(select(Project).where(Project.public_id == public_id))
            project = result.scalar_one_or_none()
            if project is None:
                return None

            files_stmt = (
                select(File)
                .where(File.project_id == project.id)
                .order_by(File.id)
            )
            files = (await session.execute(files_stmt)).scalars().all()

            return ProjectRead(
                public_id=project.public_id,
                name=unescape(project.name),
                args=project.args,
                run_configuration=project.run_configuration,
                origin=project.origin,
                read_only_file_names=self._serializer.decode(project.read_only_files),
                files=[_file_read(file) for file in files],
            )

    async def project_exists(self, public_id: str) -> bool:
        async with self._read("project_exists", public_id, "Unknown exception") as session:
            stmt = select(func.count()).select_from(Project).where(Project.public_id == public_id)
            return (await session.execute(stmt)).scalar_one() > 0

    async def get_project_name(self, public_id: str) -> str | None:
        async with self._read("get_project_name", public_id, "Unknown exception") as session:
            stmt = select(Project.name).where(Project.public_id == public_id)
            name = (await session.execute(stmt)).scalar_one_or_none()
        return unescape(name) if name is not None else None

    async def get_file(self, public_id: str) -> ProjectFileRead | None:
        async with self._read("get_file", public_id, "Unknown exception") as session:
            result = await session.execute(select(File).where(File.public_id == public_id))
            file = result.scalar_one_or_none()
        return _file_read(file) if file is not None else None

    @asynccontextmanager
    async def _read(self, operation: str, target: str, message: str) -> AsyncIterator[AsyncSession]:
        async with self._db.session() as session:
            try:
                yield session
            except Exception as exc:
                safe_record(self._diagnostics, exc, operation, f"{operation} {target}")
                raise UnknownStoreError(message) from exc


def _file_read(file: File) -> ProjectFileRead:
    return ProjectFileRead(
        public_id=file.public_id,
        name=unescape(file.name),
        content=file.content,
    )
