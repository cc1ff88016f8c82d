"""Tests for additive schema reconciliation."""

import pytest

from appforge.errors.exceptions import ValidationError
from appforge.models.document import ColumnDefinition, TableDefinition
from appforge.services.document import validate_document
from appforge.services.reconciler import SchemaReconciler, check_identifiers

from factories import document, todos_table


def _new_columns(*names):
    return {"todos": [ColumnDefinition(name=n, type="TEXT") for n in names]}


@pytest.mark.asyncio
async def test_add_columns_appends_to_existing_table(store, todo_app):
    report = await SchemaReconciler(store).add_columns(todo_app, _new_columns("due", "notes"))
    assert report.added_columns == {"todos": ["due", "notes"]}
    assert (await store.get_schema(todo_app))[0].column_names() == ["task", "due", "notes"]


@pytest.mark.asyncio
async def test_add_columns_twice_is_safe(store, todo_app):
    reconciler = SchemaReconciler(store)
    await reconciler.add_columns(todo_app, _new_columns("due"))
    second = await reconciler.add_columns(todo_app, _new_columns("due"))

    assert second.added_columns == {}
    assert second.existing_columns == {"todos": ["due"]}
    assert not second.changed
    assert (await store.get_schema(todo_app))[0].column_names() == ["task", "due"]


@pytest.mark.asyncio
async def test_storage_level_duplicate_is_tolerated(store, todo_app):
    class StaleRegistryStore:
        """Reports the schema as it was before an earlier, interrupted column add."""

        def __init__(self, inner):
            self._inner = inner

        async def get_schema(self, app_id):
            return [TableDefinition.model_validate(todos_table())]

        async def add_column(self, app_id, table_name, column):
            return await self._inner.add_column(app_id, table_name, column)

    await store.add_column(todo_app, "todos", ColumnDefinition(name="due"))
    report = await SchemaReconciler(StaleRegistryStore(store)).add_columns(todo_app, _new_columns("due"))
    assert report.existing_columns == {"todos": ["due"]}
    assert report.added_columns == {}


@pytest.mark.asyncio
async def test_columns_for_unknown_table_are_skipped(store, todo_app):
    report = await SchemaReconciler(store).add_columns(
        todo_app, {"ghosts": [ColumnDefinition(name="name")], **_new_columns("due")}
    )
    assert report.skipped_tables == ["ghosts"]
    assert report.added_columns == {"todos": ["due"]}


def test_select_new_tables_only_takes_listed_names():
    doc = validate_document(
        document(
            tables=[todos_table(), {"name": "tags", "columns": [{"name": "label"}]}],
            newTables=["tags", "todos", "missing"],
        )
    )
    selected = SchemaReconciler.select_new_tables(doc, {"todos"})
    assert [t.name for t in selected] == ["tags"]


@pytest.mark.asyncio
async def test_reconcile_creates_new_tables_and_columns(store, todo_app):
    doc = validate_document(
        document(
            tables=[todos_table({"name": "due"}), {"name": "tags", "columns": [{"name": "label"}]}],
            newTables=["tags"],
            newColumns={"todos": [{"name": "due"}], "tags": [{"name": "label"}]},
        )
    )
    reconciler = SchemaReconciler(store)
    report = await reconciler.reconcile(todo_app, doc)
    assert report.created_tables == ["tags"]
    assert report.added_columns == {"todos": ["due"]}
    assert report.existing_columns == {"tags": ["label"]}

    again = await reconciler.reconcile(todo_app, doc)
    assert not again.changed
    schema = {t.name: t.column_names() for t in await store.get_schema(todo_app)}
    assert schema == {"todos": ["task", "due"], "tags": ["label"]}


def test_check_identifiers():
    check_identifiers([TableDefinition.model_validate(todos_table())], _new_columns("due_at"))
    with pytest.raises(ValidationError):
        check_identifiers([TableDefinition(name="Todo List", columns=[])])
    with pytest.raises(ValidationError):
        check_identifiers(new_columns={"todos": [ColumnDefinition(name="due-at")]})
