"""Tests for the SQL-backed application store."""

import pytest
from sqlalchemy import text

from appforge.errors.exceptions import StorageError, ValidationError
from appforge.models.document import ColumnDefinition, TableDefinition
from appforge.models.enums import ColumnType, EditPhase, EditState
from appforge.storage.store import ColumnAlreadyExistsError, TableNotRegisteredError, full_table_name

from factories import todos_table

APP_ID = "0f8c7d9e-1111-4222-8333-444455556666"


def _table(data: dict) -> TableDefinition:
    return TableDefinition.model_validate(data)


async def _rows(session_factory, app_id, table_name):
    async with session_factory() as session:
        result = await session.execute(text(f"SELECT * FROM {full_table_name(app_id, table_name)} ORDER BY id"))
        return [dict(r._mapping) for r in result]


async def _physical_columns(session_factory, app_id, table_name):
    async with session_factory() as session:
        result = await session.execute(text(f"PRAGMA table_info({full_table_name(app_id, table_name)})"))
        return [r[1] for r in result]


def test_full_table_name():
    assert full_table_name(APP_ID, "todos") == "app_0f8c7d9e111142228333444455556666_todos"


@pytest.mark.parametrize("name", ["Todos", "to-dos", "todos;drop", "", "x" * 64])
def test_full_table_name_rejects_bad_identifiers(name):
    with pytest.raises(ValidationError):
        full_table_name(APP_ID, name)


def test_full_table_name_rejects_overlong_result():
    with pytest.raises(ValidationError):
        full_table_name(APP_ID, "t" * 40)


@pytest.mark.asyncio
async def test_create_tables_registers_schema(store, session_factory):
    created = await store.create_tables(
        APP_ID,
        [_table(todos_table({"name": "done", "type": "BOOLEAN", "default": False}))],
    )
    assert created == ["todos"]

    schema = await store.get_schema(APP_ID)
    assert [t.name for t in schema] == ["todos"]
    assert schema[0].column_names() == ["task", "done"]
    assert schema[0].columns[1].type == ColumnType.BOOLEAN
    assert await _physical_columns(session_factory, APP_ID, "todos") == ["id", "task", "done"]


@pytest.mark.asyncio
async def test_create_tables_ignores_declared_id_and_skips_existing(store, session_factory):
    await store.create_tables(APP_ID, [_table(todos_table({"name": "id", "type": "INTEGER"}))])
    again = await store.create_tables(APP_ID, [_table(todos_table())])
    assert again == []
    assert await _physical_columns(session_factory, APP_ID, "todos") == ["id", "task"]


@pytest.mark.asyncio
async def test_create_tables_validates_before_writing(store):
    bad = _table({"name": "notes", "columns": [{"name": "Body Text"}]})
    with pytest.raises(ValidationError):
        await store.create_tables(APP_ID, [_table(todos_table()), bad])
    assert await store.get_schema(APP_ID) == []


@pytest.mark.asyncio
async def test_insert_row_returns_identity(store, session_factory):
    await store.create_tables(APP_ID, [_table(todos_table())])
    ftn = full_table_name(APP_ID, "todos")
    first = await store.insert_row(ftn, {"task": "buy milk"})
    second = await store.insert_row(ftn, {"task": "walk dog"})
    assert second == first + 1
    rows = await _rows(session_factory, APP_ID, "todos")
    assert [r["task"] for r in rows] == ["buy milk", "walk dog"]


@pytest.mark.asyncio
async def test_insert_row_unknown_column_is_storage_error(store):
    await store.create_tables(APP_ID, [_table(todos_table())])
    with pytest.raises(StorageError):
        await store.insert_row(full_table_name(APP_ID, "todos"), {"priority": 1})


@pytest.mark.asyncio
async def test_insert_row_rejects_bad_keys(store):
    await store.create_tables(APP_ID, [_table(todos_table())])
    with pytest.raises(ValidationError):
        await store.insert_row(full_table_name(APP_ID, "todos"), {"task; DROP TABLE x": 1})


@pytest.mark.asyncio
async def test_add_column_appends_in_order(store, session_factory):
    await store.create_tables(APP_ID, [_table(todos_table())])
    await store.add_column(APP_ID, "todos", ColumnDefinition(name="priority", type="INTEGER"))
    await store.add_column(APP_ID, "todos", ColumnDefinition(name="due", type="TEXT"))

    schema = await store.get_schema(APP_ID)
    assert schema[0].column_names() == ["task", "priority", "due"]
    assert await _physical_columns(session_factory, APP_ID, "todos") == ["id", "task", "priority", "due"]


@pytest.mark.asyncio
async def test_add_existing_column_raises_already_exists(store):
    await store.create_tables(APP_ID, [_table(todos_table())])
    with pytest.raises(ColumnAlreadyExistsError):
        await store.add_column(APP_ID, "todos", ColumnDefinition(name="task"))
    with pytest.raises(ColumnAlreadyExistsError):
        await store.add_column(APP_ID, "todos", ColumnDefinition(name="id"))
    assert (await store.get_schema(APP_ID))[0].column_names() == ["task"]


@pytest.mark.asyncio
async def test_add_column_to_unregistered_table(store):
    with pytest.raises(TableNotRegisteredError):
        await store.add_column(APP_ID, "ghosts", ColumnDefinition(name="name"))


@pytest.mark.asyncio
async def test_application_lifecycle(store, session_factory):
    await store.create_tables(APP_ID, [_table(todos_table())])
    saved = await store.save_application(APP_ID, "Todos", "<html></html>", "todo list")
    assert saved.app_id == APP_ID
    assert saved.created_at is not None

    await store.update_markup(APP_ID, "<html>v2</html>")
    assert (await store.get_application(APP_ID)).markup == "<html>v2</html>"

    await store.record_edit_request(APP_ID, "make it blue", EditState.COMPLETE, EditPhase.FAST)
    history = await store.list_edit_requests(APP_ID)
    assert [(h.description, h.state, h.phase) for h in history] == [
        ("make it blue", EditState.COMPLETE, EditPhase.FAST)
    ]

    assert await store.delete_application(APP_ID) is True
    assert await store.get_application(APP_ID) is None
    assert await store.get_schema(APP_ID) == []
    assert await store.list_edit_requests(APP_ID) == []
    async with session_factory() as session:
        result = await session.execute(text("SELECT name FROM sqlite_master WHERE type='table'"))
        names = result.scalars().all()
    assert "applications" in names
    assert not [n for n in names if n.startswith(full_table_name(APP_ID, "todos")[:-len("todos")])]


@pytest.mark.asyncio
async def test_update_markup_of_missing_application(store):
    with pytest.raises(StorageError):
        await store.update_markup(APP_ID, "<html></html>")


@pytest.mark.asyncio
async def test_delete_missing_application(store):
    assert await store.delete_application(APP_ID) is False
