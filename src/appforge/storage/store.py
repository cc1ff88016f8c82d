"""Persistent store for generated applications, their schema registry and row tables.

Each generated application owns a set of physical tables named
``app_<appId without dashes>_<table>``. Every such table has an implicit
autoincrement ``id`` column; the declared columns are recorded in the
``app_schemas`` registry, which is the source of truth for the row API.

Each store call runs in its own session and commits on its own. Nothing here
spans several calls in one transaction.
"""

import logging
import re
from collections.abc import Sequence
from typing import Any, Protocol

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import Boolean, Column, Float, Integer, MetaData, Table, Text, column, insert, inspect, table
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from appforge.errors.exceptions import StorageError, ValidationError
from appforge.models.application import ApplicationRecord, EditRequestRecord
from appforge.models.document import (
    IDENTITY_COLUMN,
    ColumnDefinition,
    TableDefinition,
    is_valid_identifier,
)
from appforge.models.enums import ColumnType, EditPhase, EditState
from appforge.repositories.app_schema_repo import AppSchemaRepository
from appforge.repositories.application_repo import ApplicationRepository
from appforge.repositories.edit_request_repo import EditRequestRepository

logger = logging.getLogger(__name__)

_FULL_TABLE_NAME = re.compile(r"^app_[a-z0-9]+_[a-z0-9_]+$")
_MAX_TABLE_NAME_LENGTH = 63

_SQL_TYPES = {
    ColumnType.TEXT: Text,
    ColumnType.INTEGER: Integer,
    ColumnType.REAL: Float,
    ColumnType.BOOLEAN: Boolean,
}


class TableNotRegisteredError(StorageError):
    """The application has no registry entry for the requested table."""

    def __init__(self, app_id: str, table_name: str):
        super().__init__(f"Table '{table_name}' is not registered for application '{app_id}'")
        self.table_name = table_name


class ColumnAlreadyExistsError(StorageError):
    """The storage table already has a column with this name."""

    def __init__(self, table_name: str, column_name: str):
        super().__init__(f"Column '{column_name}' already exists on '{table_name}'")
        self.table_name = table_name
        self.column_name = column_name


def full_table_name(app_id: str, table_name: str) -> str:
    """Return the physical table name for an application's table."""
    require_identifier(table_name, "table")
    name = f"app_{app_id.replace('-', '').lower()}_{table_name}"
    if not _FULL_TABLE_NAME.match(name) or len(name) > _MAX_TABLE_NAME_LENGTH:
        raise ValidationError(f"Table name '{table_name}' cannot be stored for application '{app_id}'")
    return name


def require_identifier(name: Any, kind: str) -> str:
    """Raise ValidationError unless ``name`` is a lowercase alphanumeric/underscore identifier."""
    if not is_valid_identifier(name):
        raise ValidationError(
            f"Invalid {kind} name {name!r}: use lowercase letters, digits and underscores only"
        )
    return name


def _server_default(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"
    return str(value)


def _to_sql_column(col: ColumnDefinition) -> Column:
    # NOT NULL is never enforced: generated markup may omit fields on insert
    return Column(
        col.name,
        _SQL_TYPES[col.type],
        nullable=True,
        server_default=_server_default(col.default),
    )


def _storable_columns(table_def: TableDefinition) -> list[ColumnDefinition]:
    columns = []
    seen = set()
    for col in table_def.columns:
        if col.name == IDENTITY_COLUMN:
            logger.warning("Ignoring declared identity column on table %s", table_def.name)
            continue
        if col.name in seen:
            logger.warning("Ignoring duplicate column %s on table %s", col.name, table_def.name)
            continue
        seen.add(col.name)
        columns.append(col)
    return columns


class AppStore(Protocol):
    """Storage-layer interface consumed by the generation and edit pipelines."""

    async def create_tables(self, app_id: str, tables: Sequence[TableDefinition]) -> list[str]: ...

    async def add_column(self, app_id: str, table_name: str, column: ColumnDefinition) -> None: ...

    async def insert_row(self, full_table_name: str, row: dict) -> int: ...

    async def get_schema(self, app_id: str) -> list[TableDefinition]: ...

    async def update_markup(self, app_id: str, markup: str) -> None: ...

    async def get_application(self, app_id: str) -> ApplicationRecord | None: ...

    async def save_application(
        self, app_id: str, title: str, markup: str, description: str = ""
    ) -> ApplicationRecord: ...

    async def delete_application(self, app_id: str) -> bool: ...

    async def record_edit_request(
        self,
        app_id: str,
        description: str,
        state: EditState,
        phase: EditPhase | None = None,
        error: str | None = None,
    ) -> None: ...

    async def list_edit_requests(self, app_id: str) -> list[EditRequestRecord]: ...


class SqlAppStore:
    """AppStore backed by SQLAlchemy; works on SQLite and PostgreSQL."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def create_tables(self, app_id: str, tables: Sequence[TableDefinition]) -> list[str]:
        """Create storage tables and registry entries.

        Every table and column name is validated before any SQL is issued.
        Tables already present in the registry are left untouched.
        """
        planned = []
        for table_def in tables:
            require_identifier(table_def.name, "table")
            columns = _storable_columns(table_def)
            for col in columns:
                require_identifier(col.name, "column")
            planned.append((table_def.name, full_table_name(app_id, table_def.name), columns))

        created = []
        try:
            async with self._session_factory() as session:
                repo = AppSchemaRepository(session)
                conn = await session.connection()
                for table_name, ftn, columns in planned:
                    if await repo.get(app_id, table_name):
                        logger.warning("Table %s already registered, not re-creating", table_name)
                        continue
                    sql_table = Table(
                        ftn,
                        MetaData(),
                        Column(IDENTITY_COLUMN, Integer, primary_key=True, autoincrement=True),
                        *[_to_sql_column(c) for c in columns],
                    )
                    await conn.run_sync(sql_table.create, checkfirst=True)
                    await repo.create(
                        app_id=app_id,
                        table_name=table_name,
                        columns=[c.to_registry() for c in columns],
                    )
                    created.append(table_name)
                    logger.info("Created table %s (%d columns)", ftn, len(columns))
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create tables: {exc}") from exc
        return created

    async def add_column(self, app_id: str, table_name: str, column: ColumnDefinition) -> None:
        """Append a column to the storage table and its registry entry.

        Raises ColumnAlreadyExistsError when the storage table already has the
        column; the registry is brought in line first so a half-finished
        earlier attempt is completed.
        """
        require_identifier(column.name, "column")
        if column.name == IDENTITY_COLUMN:
            raise ColumnAlreadyExistsError(table_name, column.name)
        ftn = full_table_name(app_id, table_name)

        try:
            async with self._session_factory() as session:
                repo = AppSchemaRepository(session)
                registry_row = await repo.get(app_id, table_name)
                if registry_row is None:
                    raise TableNotRegisteredError(app_id, table_name)

                conn = await session.connection()
                existing = await conn.run_sync(
                    lambda sync_conn: {c["name"] for c in inspect(sync_conn).get_columns(ftn)}
                )
                registered = {c.get("name") for c in registry_row.columns}

                if column.name in existing:
                    if column.name not in registered:
                        await repo.append_column(registry_row, column.to_registry())
                        await session.commit()
                    raise ColumnAlreadyExistsError(table_name, column.name)

                sql_column = _to_sql_column(column)
                await conn.run_sync(
                    lambda sync_conn: Operations(MigrationContext.configure(sync_conn)).add_column(ftn, sql_column)
                )
                if column.name not in registered:
                    await repo.append_column(registry_row, column.to_registry())
                await session.commit()
                logger.info("Added column %s.%s (%s)", table_name, column.name, column.type)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to add column '{column.name}' to '{table_name}': {exc}") from exc

    async def insert_row(self, full_table_name: str, row: dict) -> int:
        """Insert one row as-is and return its identity value."""
        if not _FULL_TABLE_NAME.match(full_table_name):
            raise ValidationError(f"Invalid storage table name {full_table_name!r}")
        for key in row:
            require_identifier(key, "column")

        names = list(row)
        if IDENTITY_COLUMN not in names:
            names.append(IDENTITY_COLUMN)
        target = table(full_table_name, *[column(n) for n in names])
        try:
            stmt = insert(target).values(row).returning(target.c[IDENTITY_COLUMN])
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                row_id = result.scalar_one()
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to insert row into '{full_table_name}': {exc}") from exc
        return row_id

    async def get_schema(self, app_id: str) -> list[TableDefinition]:
        async with self._session_factory() as session:
            rows = await AppSchemaRepository(session).list_by_app(app_id)
        return [
            TableDefinition(
                name=r.table_name,
                columns=[ColumnDefinition.model_validate(c) for c in r.columns],
            )
            for r in rows
        ]

    async def update_markup(self, app_id: str, markup: str) -> None:
        try:
            async with self._session_factory() as session:
                repo = ApplicationRepository(session)
                row = await repo.get(app_id)
                if row is None:
                    raise StorageError(f"Application '{app_id}' does not exist")
                await repo.update(row, markup=markup)
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to update markup of '{app_id}': {exc}") from exc

    async def get_application(self, app_id: str) -> ApplicationRecord | None:
        async with self._session_factory() as session:
            row = await ApplicationRepository(session).get(app_id)
        return ApplicationRecord.model_validate(row) if row else None

    async def list_applications(self, limit: int = 100) -> list[ApplicationRecord]:
        async with self._session_factory() as session:
            rows = await ApplicationRepository(session).list_recent(limit)
        return [ApplicationRecord.model_validate(r) for r in rows]

    async def save_application(
        self, app_id: str, title: str, markup: str, description: str = ""
    ) -> ApplicationRecord:
        try:
            async with self._session_factory() as session:
                row = await ApplicationRepository(session).create(
                    app_id=app_id,
                    title=title,
                    markup=markup,
                    description=description,
                )
                await session.commit()
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to save application '{app_id}': {exc}") from exc
        return ApplicationRecord.model_validate(row)

    async def delete_application(self, app_id: str) -> bool:
        """Drop every storage table of the application and all of its metadata."""
        async with self._session_factory() as session:
            schema_repo = AppSchemaRepository(session)
            registry_rows = await schema_repo.list_by_app(app_id)
            conn = await session.connection()
            for r in registry_rows:
                sql_table = Table(full_table_name(app_id, r.table_name), MetaData())
                await conn.run_sync(sql_table.drop, checkfirst=True)
            await schema_repo.delete_by_app(app_id)
            await EditRequestRepository(session).delete_by_app(app_id)
            existed = await ApplicationRepository(session).delete(app_id)
            await session.commit()
        logger.info("Deleted application %s (%d tables)", app_id, len(registry_rows))
        return existed

    async def record_edit_request(
        self,
        app_id: str,
        description: str,
        state: EditState,
        phase: EditPhase | None = None,
        error: str | None = None,
    ) -> None:
        async with self._session_factory() as session:
            await EditRequestRepository(session).create(
                app_id=app_id,
                description=description,
                state=str(state),
                phase=str(phase) if phase else None,
                error=error,
            )
            await session.commit()

    async def list_edit_requests(self, app_id: str) -> list[EditRequestRecord]:
        async with self._session_factory() as session:
            rows = await EditRequestRepository(session).list_by_app(app_id)
        return [EditRequestRecord.model_validate(r) for r in rows]
