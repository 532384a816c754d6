"""
Write operations on users, projects and files.

Every public method is one unit of work (see _unit_of_work):
  1. one session from the pool, committed on success, rolled back otherwise;
  2. owner-scoped lookups first (NotFound for missing-or-not-yours);
  3. display names escaped before they reach the database;
  4. one statement for the logical change, scoped by the caller's identity,
     whose affected-row count must be exactly 1 (else ConsistencyError);
  5. uniqueness violations become AlreadyExists, anything else
     UnknownStoreError. Every failure is recorded at the diagnostics sink
     before it is raised.

PROJECT CREATION IS NOT ATOMIC:
  create_project inserts the project row in one unit of work and then each
  payload file in a unit of its own. If a file fails (file quota reached,
  duplicate name, ...) the project and the files already added stay, and
  the failure is raised to the caller.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql.expression import Executable

from playground_store.auth import identity as identity_lookups
from playground_store.auth.identity import (
    CallerIdentity,
    owned_by,
    owned_project_ids,
    resolve_file_key,
    resolve_owner_key,
    resolve_project_key,
)
from playground_store.core.database import Database
from playground_store.core.diagnostics import DiagnosticsSink, safe_record
from playground_store.core.errors import (
    AlreadyExists,
    ConsistencyError,
    NotFound,
    StoreError,
    UnknownStoreError,
    is_unique_violation,
)
from playground_store.models.file import File
from playground_store.models.project import Project
from playground_store.models.user import User
from playground_store.schemas.project import (
    ProjectCreate,
    ProjectMetadata,
    TemplateProject,
)
from playground_store.services.encoding import ReadOnlyListSerializer, escape
from playground_store.services.identifiers import IdentifierGenerator, is_public_id_taken
from playground_store.services.quota import (
    DEFAULT_QUOTA,
    enforce_file_quota,
    enforce_project_quota,
)

logger = logging.getLogger(__name__)

PROJECT_EXISTS = "Project with this name already exists"
FILE_EXISTS = "File with this name already exists in this project"
READ_ONLY_FILE_MISSING = "Can't find read-only file"

# Inserts that lose the public-id race get a fresh id this many times.
ID_INSERT_ATTEMPTS = 3

TEMPLATE_ARGS = ""
TEMPLATE_RUN_CONFIGURATION = "java"
TEMPLATE_FILE_CONTENT = "fun main(args: Array<String>) {\n\n}"


class ProjectMutations:
    """Quota-guarded, owner-scoped writes."""

    def __init__(
        self,
        database: Database,
        identifiers: IdentifierGenerator,
        diagnostics: DiagnosticsSink,
        serializer: ReadOnlyListSerializer | None = None,
        *,
        project_quota: int = DEFAULT_QUOTA,
        file_quota: int = DEFAULT_QUOTA,
        source_file_extension: str = ".kt",
    ) -> None:
        self._db = database
        self._identifiers = identifiers
        self._diagnostics = diagnostics
        self._serializer = serializer or ReadOnlyListSerializer()
        self._project_quota = project_quota
        self._file_quota = file_quota
        self._source_file_extension = source_file_extension

    # ── Users ───────────────────────────────────────────────
    async def ensure_user(self, identity: CallerIdentity) -> int:
        """Register the caller on first sign-in; no-op if already known."""
        async with self._unit_of_work("ensure_user", identity, identity.external_id) as session:
            return await identity_lookups.ensure_user(session, identity)

    # ── Projects ────────────────────────────────────────────
    async def create_project(self, identity: CallerIdentity, payload: ProjectCreate) -> str:
        """
        Create a project and then its payload files, one by one.

        Returns the new project's public id. Raises QuotaExceeded before
        drawing an id when the caller is at the project ceiling.
        """
        stored_name = escape(payload.name)
        read_only_files = self._serializer.encode(payload.read_only_file_names)

        async with self._unit_of_work(
            "create_project", identity, payload.name, conflict=PROJECT_EXISTS,
        ) as session:
            owner_key = await resolve_owner_key(session, identity)
            await enforce_project_quota(session, identity, self._project_quota)

            public_id = await self._insert_with_public_id(
                session,
                Project.public_id,
                self._identifiers.next_project_id,
                lambda candidate: insert(Project).values(
                    owner_id=owner_key,
                    name=stored_name,
                    args=payload.args,
                    run_configuration=payload.run_configuration,
                    origin=payload.origin,
                    public_id=candidate,
                    read_only_files=read_only_files,
                ),
            )
            project_key = await resolve_project_key(session, identity, public_id)

        logger.info("Created project %s for %s/%s", public_id, identity.provider, identity.external_id)

        for file in payload.files:
            await self._add_file_to_project(
                identity, project_key, file.name, file.text, target=f"{public_id}/{file.name}",
            )
        return public_id

    async def create_project_from_template(self, identity: CallerIdentity, name: str) -> TemplateProject:
        """Create a project holding one empty `main` source file named after it."""
        project_id = await self.create_project(
            identity,
            ProjectCreate(
                name=name,
                args=TEMPLATE_ARGS,
                run_configuration=TEMPLATE_RUN_CONFIGURATION,
            ),
        )
        file_id = await self.add_file(identity, project_id, name, TEMPLATE_FILE_CONTENT)
        return TemplateProject(project_id=project_id, file_id=file_id)

    async def save_project_metadata(
        self,
        identity: CallerIdentity,
        public_id: str,
        metadata: ProjectMetadata,
    ) -> None:
        """Rewrite args and run configuration. The stored name must match metadata.name."""
        async with self._unit_of_work(
            "save_project", identity, public_id, conflict=PROJECT_EXISTS,
        ) as session:
            owner_key = await resolve_owner_key(session, identity)
            await resolve_project_key(session, identity, public_id)
            stmt = (
                update(Project)
                .where(
                    Project.owner_id == owner_key,
                    Project.name == escape(metadata.name),
                    Project.public_id == public_id,
                )
                .values(args=metadata.args, run_configuration=metadata.run_configuration)
            )
            await self._execute_one(session, stmt, "projects", "updated")

    async def rename_project(self, identity: CallerIdentity, public_id: str, new_name: str) -> None:
        async with self._unit_of_work(
            "rename_project", identity, public_id, conflict=PROJECT_EXISTS,
        ) as session:
            owner_key = await resolve_owner_key(session, identity)
            await resolve_project_key(session, identity, public_id)
            stmt = (
                update(Project)
                .where(Project.owner_id == owner_key, Project.public_id == public_id)
                .values(name=escape(new_name))
            )
            await self._execute_one(session, stmt, "projects", "updated")

    async def delete_project(self, identity: CallerIdentity, public_id: str) -> None:
        """Delete a project; the database cascades to its files."""
        async with self._unit_of_work("delete_project", identity, public_id) as session:
            owner_key = await resolve_owner_key(session, identity)
            await resolve_project_key(session, identity, public_id)
            stmt = delete(Project).where(
                Project.owner_id == owner_key,
                Project.public_id == public_id,
            )
            await self._execute_one(session, stmt, "projects", "deleted")
        logger.info("Deleted project %s for %s/%s", public_id, identity.provider, identity.external_id)

    async def clear_read_only_marker(
        self,
        identity: CallerIdentity,
        project_public_id: str,
        file_name: str,
    ) -> None:
        """Drop one name from the project's read-only list."""
        async with self._unit_of_work(
            "clear_read_only_marker", identity, f"{project_public_id}/{file_name}",
        ) as session:
            stmt = (
                select(Project.read_only_files)
                .join(User, Project.owner_id == User.id)
                .where(owned_by(identity), Project.public_id == project_public_id)
            )
            row = (await session.execute(stmt)).one_or_none()
            if row is None:
                raise NotFound(READ_ONLY_FILE_MISSING)

            names = self._serializer.decode(row.read_only_files)
            if file_name not in names:
                raise NotFound(READ_ONLY_FILE_MISSING)
            names.remove(file_name)

            update_stmt = (
                update(Project)
                .where(
                    Project.public_id == project_public_id,
                    Project.owner_id.in_(select(User.id).where(owned_by(identity))),
                )
                .values(read_only_files=self._serializer.encode(names))
            )
            await self._execute_one(session, update_stmt, "projects", "updated")

    # ── Files ───────────────────────────────────────────────
    async def add_file(
        self,
        identity: CallerIdentity,
        project_public_id: str,
        name: str,
        content: str = "",
    ) -> str:
        """Add a file to one of the caller's projects. Returns its public id."""
        async with self._unit_of_work(
            "add_file", identity, f"{project_public_id}/{name}", conflict=FILE_EXISTS,
        ) as session:
            project_key = await resolve_project_key(session, identity, project_public_id)
            return await self._insert_file(session, identity, project_key, name, content)

    async def save_file_content(self, identity: CallerIdentity, file_public_id: str, content: str) -> None:
        async with self._unit_of_work(
            "save_file", identity, file_public_id, conflict=FILE_EXISTS,
        ) as session:
            await resolve_file_key(session, identity, file_public_id)
            stmt = (
                update(File)
                .where(
                    File.public_id == file_public_id,
                    File.project_id.in_(owned_project_ids(identity)),
                )
                .values(content=content)
            )
            await self._execute_one(session, stmt, "files", "updated")

    async def rename_file(self, identity: CallerIdentity, file_public_id: str, new_name: str) -> None:
        async with self._unit_of_work(
            "rename_file", identity, file_public_id, conflict=FILE_EXISTS,
        ) as session:
            await resolve_file_key(session, identity, file_public_id)
            stmt = (
                update(File)
                .where(
                    File.public_id == file_public_id,
                    File.project_id.in_(owned_project_ids(identity)),
                )
                .values(name=escape(new_name))
            )
            await self._execute_one(session, stmt, "files", "updated")

    async def delete_file(self, identity: CallerIdentity, file_public_id: str) -> None:
        async with self._unit_of_work("delete_file", identity, file_public_id) as session:
            await resolve_file_key(session, identity, file_public_id)
            stmt = delete(File).where(
                File.public_id == file_public_id,
                File.project_id.in_(owned_project_ids(identity)),
            )
            await self._execute_one(session, stmt, "files", "deleted")

    # ── Internals ───────────────────────────────────────────
    async def _add_file_to_project(
        self,
        identity: CallerIdentity,
        project_key: int,
        name: str,
        content: str,
        *,
        target: str,
    ) -> str:
        async with self._unit_of_work("add_file", identity, target, conflict=FILE_EXISTS) as session:
            return await self._insert_file(session, identity, project_key, name, content)

    async def _insert_file(
        self,
        session: AsyncSession,
        identity: CallerIdentity,
        project_key: int,
        name: str,
        content: str,
    ) -> str:
        await enforce_file_quota(session, identity, self._file_quota)
        stored_name = escape(self._with_source_extension(name))
        return await self._insert_with_public_id(
            session,
            File.public_id,
            self._identifiers.next_file_id,
            lambda candidate: insert(File).values(
                project_id=project_key,
                public_id=candidate,
                name=stored_name,
                content=content,
            ),
        )

    def _with_source_extension(self, name: str) -> str:
        extension = self._source_file_extension
        if not extension or name.endswith(extension):
            return name
        return name + extension

    async def _insert_with_public_id(
        self,
        session: AsyncSession,
        column: InstrumentedAttribute[str],
        next_id: Callable[[AsyncSession], Awaitable[str]],
        build_insert: Callable[[str], Executable],
    ) -> str:
        """
        Draw a verified-unique public id and insert with it.

        The pre-check can race with another writer. If the INSERT hits the
        unique index and the id turns out to be taken, draw again; a
        violation on anything else (a duplicate name) is re-raised for the
        unit of work to classify.
        """
        for attempt in range(1, ID_INSERT_ATTEMPTS + 1):
            candidate = await next_id(session)
            try:
                await session.execute(build_insert(candidate))
                return candidate
            except IntegrityError as exc:
                await session.rollback()
                if not is_unique_violation(exc):
                    raise
                if not await is_public_id_taken(session, column, candidate):
                    raise
                logger.warning(
                    "Public id %s was claimed concurrently (attempt %d/%d)",
                    candidate, attempt, ID_INSERT_ATTEMPTS,
                )
        raise AlreadyExists(f"Could not allocate a unique public id after {ID_INSERT_ATTEMPTS} attempts")

    @staticmethod
    async def _execute_one(session: AsyncSession, stmt: Executable, what: str, verb: str) -> None:
        """Run a write that must touch exactly one row."""
        result = await session.execute(
            stmt.execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConsistencyError(f"{result.rowcount} {what} were {verb}")

    @asynccontextmanager
    async def _unit_of_work(
        self,
        operation: str,
        identity: CallerIdentity,
        target: str,
        *,
        conflict: str | None = None,
    ) -> AsyncIterator[AsyncSession]:
        """
        One session, one transaction, one classification policy.

        conflict: AlreadyExists message for uniqueness violations. Without
        it, a uniqueness violation is unexpected and becomes Unknown.
        """
        detail = f"{operation} {identity.describe()}, target {target}"
        async with self._db.session() as session:
            try:
                yield session
                await session.commit()
            except StoreError as exc:
                await session.rollback()
                safe_record(self._diagnostics, exc, operation, detail)
                raise
            except IntegrityError as exc:
                await session.rollback()
                safe_record(self._diagnostics, exc, operation, detail)
                if conflict is not None and is_unique_violation(exc):
                    raise AlreadyExists(conflict) from exc
                raise UnknownStoreError("Unknown exception") from exc
            except Exception as exc:
                await session.rollback()
                safe_record(self._diagnostics, exc, operation, detail)
                raise UnknownStoreError("Unknown exception") from exc
