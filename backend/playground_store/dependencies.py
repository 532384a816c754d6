"""
FastAPI wiring for the request layer that consumes the store.

Lifespan:
  • On startup: build the store, verify DB connectivity, attach it to
    app.state.store.
  • On shutdown: dispose the engine cleanly.

Usage in the host application:
    app = FastAPI(lifespan=store_lifespan(settings))

    @router.get("/projects")
    async def list_projects(queries: Queries, ...): ...
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, Request

from playground_store.core.config import Settings
from playground_store.core.logging_config import configure_logging
from playground_store.services.mutations import ProjectMutations
from playground_store.services.queries import ProjectQueries
from playground_store.store import PlaygroundStore

logger = logging.getLogger(__name__)


def store_lifespan(
    settings: Settings,
    *,
    store_factory: Callable[[Settings], PlaygroundStore] = PlaygroundStore.from_settings,
    setup_logging: bool = True,
) -> Callable[[FastAPI], AbstractAsyncContextManager[None]]:
    """Build a FastAPI lifespan that owns one PlaygroundStore."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if setup_logging:
            configure_logging(settings)

        store = store_factory(settings)
        await store.verify_connection()
        app.state.store = store

        yield  # ← application runs here

        await store.dispose()
        logger.info("%s store shut down", settings.APP_NAME)

    return lifespan


# ── Dependencies ────────────────────────────────────────────
def get_store(request: Request) -> PlaygroundStore:
    return request.app.state.store


def get_mutations(store: PlaygroundStore = Depends(get_store)) -> ProjectMutations:
    return store.mutations


def get_queries(store: PlaygroundStore = Depends(get_store)) -> ProjectQueries:
    return store.queries


# Type aliases for cleaner signatures
Store = Annotated[PlaygroundStore, Depends(get_store)]
Mutations = Annotated[ProjectMutations, Depends(get_mutations)]
Queries = Annotated[ProjectQueries, Depends(get_queries)]
