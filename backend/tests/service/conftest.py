from collections.abc import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio

from playground_store.auth.identity import CallerIdentity
from playground_store.core.config import Settings
from playground_store.services.identifiers import IdentifierGenerator
from playground_store.store import PlaygroundStore

# Fresh in-memory database per store
DATABASE_URL = "sqlite+aiosqlite://"

ALICE = CallerIdentity(external_id="alice-1", provider="github", display_name="Alice")
BOB = CallerIdentity(external_id="bob-7", provider="google", display_name="Bob")


class RecordingSink:
    """Diagnostics sink that keeps every record for assertions."""

    def __init__(self) -> None:
        self.records: list[tuple[BaseException, str, str, str]] = []

    def record(self, failure, operation_category, context_tag, detail) -> None:
        self.records.append((failure, operation_category, context_tag, detail))

    @property
    def tags(self) -> list[str]:
        return [tag for _, _, tag, _ in self.records]


def make_settings(**overrides) -> Settings:
    values = {"DATABASE_URL": DATABASE_URL, **overrides}
    return Settings(_env_file=None, **values)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest_asyncio.fixture
async def store_factory(
    sink: RecordingSink,
) -> AsyncGenerator[Callable[..., Awaitable[PlaygroundStore]], None]:
    """Build stores on demand; each gets its own in-memory database."""
    stores: list[PlaygroundStore] = []

    async def build(
        identifiers: IdentifierGenerator | None = None,
        **overrides,
    ) -> PlaygroundStore:
        store = PlaygroundStore.from_settings(
            make_settings(**overrides),
            diagnostics=sink,
            identifiers=identifiers,
        )
        await store.create_schema()
        stores.append(store)
        return store

    yield build

    for store in stores:
        await store.dispose()


@pytest_asyncio.fixture
async def store(store_factory) -> PlaygroundStore:
    store = await store_factory()
    await store.mutations.ensure_user(ALICE)
    await store.mutations.ensure_user(BOB)
    return store
