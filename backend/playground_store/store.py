"""
PlaygroundStore — the explicitly constructed entry point.

One store owns one Database (engine + pool), one diagnostics sink and one
identifier generator, and exposes the two executors:

    store = PlaygroundStore.from_settings(settings)
    await store.mutations.create_project(identity, payload)
    await store.queries.get_project(public_id)
    await store.dispose()

There is no process-wide instance; the host application builds one at
startup and passes it to whoever needs it.
"""

from __future__ import annotations

import logging

from playground_store.core.config import Settings
from playground_store.core.database import Database
from playground_store.core.diagnostics import DiagnosticsSink, LoggingDiagnosticsSink
from playground_store.services.encoding import ReadOnlyListSerializer
from playground_store.services.identifiers import IdentifierGenerator
from playground_store.services.mutations import ProjectMutations
from playground_store.services.queries import ProjectQueries

logger = logging.getLogger(__name__)


class PlaygroundStore:
    def __init__(
        self,
        database: Database,
        settings: Settings,
        *,
        diagnostics: DiagnosticsSink | None = None,
        identifiers: IdentifierGenerator | None = None,
    ) -> None:
        self.database = database
        self.settings = settings
        self.diagnostics = diagnostics or LoggingDiagnosticsSink()
        self.identifiers = identifiers or IdentifierGenerator()

        serializer = ReadOnlyListSerializer()
        self.mutations = ProjectMutations(
            database,
            self.identifiers,
            self.diagnostics,
            serializer,
            project_quota=settings.PROJECT_QUOTA,
            file_quota=settings.FILE_QUOTA,
            source_file_extension=settings.SOURCE_FILE_EXTENSION,
        )
        self.queries = ProjectQueries(database, self.diagnostics, serializer)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        diagnostics: DiagnosticsSink | None = None,
        identifiers: IdentifierGenerator | None = None,
    ) -> PlaygroundStore:
        return cls(
            Database.from_settings(settings),
            settings,
            diagnostics=diagnostics,
            identifiers=identifiers,
        )

    async def verify_connection(self) -> bool:
        """True when the database answers; logs a warning otherwise."""
        try:
            await self.database.ping()
        except Exception:
            logger.warning(
                "Could not reach the database. "
                "The store is usable, but operations will fail until the DB is available.",
                exc_info=True,
            )
            return False
        logger.info("Database connection verified")
        return True

    async def create_schema(self) -> None:
        """Create all tables directly (development and tests)."""
        await self.database.create_all()

    async def dispose(self) -> None:
        await self.database.dispose()
