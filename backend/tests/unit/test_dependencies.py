from types import SimpleNamespace

import pytest
from fastapi import FastAPI

from playground_store.core.config import Settings
from playground_store.dependencies import (
    get_mutations,
    get_queries,
    get_store,
    store_lifespan,
)


class FakeStore:
    def __init__(self, reachable: bool = True) -> None:
        self.reachable = reachable
        self.calls: list[str] = []
        self.mutations = object()
        self.queries = object()

    async def verify_connection(self) -> bool:
        self.calls.append("verify_connection")
        return self.reachable

    async def dispose(self) -> None:
        self.calls.append("dispose")


def make_settings() -> Settings:
    return Settings(DATABASE_URL="sqlite+aiosqlite://", _env_file=None)


@pytest.mark.asyncio
@pytest.mark.parametrize("reachable", [True, False])
async def test_lifespan_attaches_and_disposes_store(reachable):
    fake = FakeStore(reachable)
    built_with = []

    def factory(settings):
        built_with.append(settings)
        return fake

    settings = make_settings()
    app = FastAPI(lifespan=store_lifespan(settings, store_factory=factory, setup_logging=False))

    async with app.router.lifespan_context(app):
        assert app.state.store is fake
        assert fake.calls == ["verify_connection"]

    assert built_with == [settings]
    assert fake.calls == ["verify_connection", "dispose"]


def test_providers_read_the_attached_store():
    fake = FakeStore()
    app = FastAPI()
    app.state.store = fake
    request = SimpleNamespace(app=app)

    store = get_store(request)

    assert store is fake
    assert get_mutations(store) is fake.mutations
    assert get_queries(store) is fake.queries
