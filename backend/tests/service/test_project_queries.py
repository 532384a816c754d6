"""Service tests for ProjectQueries and store lifecycle."""

import pytest
from sqlalchemy import update

from conftest import ALICE, BOB, make_settings
from playground_store.auth.identity import CallerIdentity
from playground_store.core.errors import UnknownStoreError
from playground_store.models.project import Project
from playground_store.schemas.project import ProjectCreate, ProjectFileCreate
from playground_store.services.identifiers import IdentifierGenerator
from playground_store.services.quota import (
    check_file_quota,
    check_project_quota,
    count_files,
    count_projects,
)
from playground_store.store import PlaygroundStore


@pytest.mark.asyncio
async def test_list_project_headers_only_shows_own_projects(store):
    await store.mutations.create_project(ALICE, ProjectCreate(name="a b c"))
    await store.mutations.create_project(ALICE, ProjectCreate(name="100%20 real"))
    await store.mutations.create_project(BOB, ProjectCreate(name="bob's"))

    headers = await store.queries.list_project_headers(ALICE)

    assert [h.name for h in headers] == ["a b c", "100%20 real"]
    assert all(h.public_id for h in headers)


@pytest.mark.asyncio
async def test_list_project_headers_for_unknown_user_is_empty(store):
    ghost = CallerIdentity(external_id="ghost", provider="github")

    assert await store.queries.list_project_headers(ghost) == []


@pytest.mark.asyncio
async def test_missing_rows_are_absent_not_errors(store):
    assert await store.queries.get_project("nope") is None
    assert await store.queries.get_project_name("nope") is None
    assert await store.queries.get_file("nope") is None
    assert await store.queries.project_exists("nope") is False


@pytest.mark.asyncio
async def test_project_name_and_existence(store):
    public_id = await store.mutations.create_project(ALICE, ProjectCreate(name="Space Name"))

    assert await store.queries.project_exists(public_id) is True
    assert await store.queries.get_project_name(public_id) == "Space Name"


@pytest.mark.asyncio
async def test_get_project_treats_empty_read_only_column_as_empty_list(store):
    public_id = await store.mutations.create_project(ALICE, ProjectCreate(name="P"))
    async with store.database.session() as session:
        await session.execute(
            update(Project).where(Project.public_id == public_id).values(read_only_files=None)
        )
        await session.commit()

    project = await store.queries.get_project(public_id)

    assert project.read_only_file_names == []


@pytest.mark.asyncio
async def test_get_project_with_corrupt_read_only_column_is_unknown(store, sink):
    public_id = await store.mutations.create_project(ALICE, ProjectCreate(name="P"))
    async with store.database.session() as session:
        await session.execute(
            update(Project).where(Project.public_id == public_id).values(read_only_files="{not json")
        )
        await session.commit()

    with pytest.raises(UnknownStoreError, match="loading your project"):
        await store.queries.get_project(public_id)

    assert sink.tags == ["get_project"]


@pytest.mark.asyncio
async def test_get_file_unescapes_name(store):
    public_id = await store.mutations.create_project(ALICE, ProjectCreate(name="P"))
    file_id = await store.mutations.add_file(ALICE, public_id, "My File", "body")

    file = await store.queries.get_file(file_id)

    assert file.name == "My File.kt"
    assert file.content == "body"
    assert file.public_id == file_id


# ── Quota guard ─────────────────────────────────────────────
@pytest.mark.asyncio
async def test_quota_counts_only_callers_rows(store):
    await store.mutations.create_project(
        ALICE, ProjectCreate(name="P", files=[ProjectFileCreate(name="A"), ProjectFileCreate(name="B")]),
    )
    await store.mutations.create_project(BOB, ProjectCreate(name="Q"))

    async with store.database.session() as session:
        assert await count_projects(session, ALICE) == 1
        assert await count_files(session, ALICE) == 2
        assert await count_files(session, BOB) == 0
        assert await check_project_quota(session, ALICE, limit=2) is True
        assert await check_project_quota(session, ALICE, limit=1) is False
        assert await check_file_quota(session, ALICE, limit=2) is False


# ── Identifier generator ────────────────────────────────────
@pytest.mark.asyncio
async def test_identifier_generator_skips_ids_already_in_use(store):
    taken = await store.mutations.create_project(ALICE, ProjectCreate(name="P"))
    draws = iter([taken, taken, "unused"])
    generator = IdentifierGenerator(token_source=lambda: next(draws))

    async with store.database.session() as session:
        assert await generator.next_project_id(session) == "unused"


@pytest.mark.asyncio
async def test_identifier_generator_checks_the_matching_table(store):
    taken_project = await store.mutations.create_project(ALICE, ProjectCreate(name="P"))
    generator = IdentifierGenerator(token_source=lambda: taken_project)

    async with store.database.session() as session:
        # a project id says nothing about the files table
        assert await generator.next_file_id(session) == taken_project


# ── Store lifecycle ─────────────────────────────────────────
@pytest.mark.asyncio
async def test_verify_connection(store):
    assert await store.verify_connection() is True


@pytest.mark.asyncio
async def test_verify_connection_reports_unreachable_database():
    store = PlaygroundStore.from_settings(
        make_settings(DATABASE_URL="sqlite+aiosqlite:////nonexistent-dir/sub/playground.db"),
    )
    try:
        assert await store.verify_connection() is False
    finally:
        await store.dispose()
