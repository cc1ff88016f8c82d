"""Additive reconciliation of generated schema against the schema registry.

Tables and columns are only ever added. Nothing is dropped, renamed or
retyped, so running the same reconciliation twice is harmless.
"""

import logging
from collections.abc import Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from appforge.models.document import ColumnDefinition, GeneratedDocument, TableDefinition
from appforge.storage.store import AppStore, ColumnAlreadyExistsError, require_identifier

logger = logging.getLogger(__name__)


def check_identifiers(
    tables: Iterable[TableDefinition] = (),
    new_columns: Mapping[str, Sequence[ColumnDefinition]] | None = None,
) -> None:
    """Raise ValidationError for any table or column name that cannot be stored."""
    for table in tables:
        require_identifier(table.name, "table")
        for col in table.columns:
            require_identifier(col.name, "column")
    for table_name, columns in (new_columns or {}).items():
        require_identifier(table_name, "table")
        for col in columns:
            require_identifier(col.name, "column")


@dataclass
class ReconciliationReport:
    created_tables: list[str] = field(default_factory=list)
    added_columns: dict[str, list[str]] = field(default_factory=dict)
    existing_columns: dict[str, list[str]] = field(default_factory=dict)
    skipped_tables: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.created_tables or self.added_columns)


class SchemaReconciler:
    def __init__(self, store: AppStore):
        self._store = store

    @staticmethod
    def select_new_tables(document: GeneratedDocument, existing: Collection[str]) -> list[TableDefinition]:
        """Definitions for the tables the document lists as new and that do not exist yet."""
        selected = []
        for name in dict.fromkeys(document.new_tables):
            if name in existing:
                logger.info("Table %s listed as new but already exists, skipping", name)
                continue
            table = document.table(name)
            if table is None:
                logger.warning("Table %s listed as new but has no definition, skipping", name)
                continue
            selected.append(table)
        return selected

    async def create_tables(
        self, app_id: str, tables: Sequence[TableDefinition], report: ReconciliationReport | None = None
    ) -> ReconciliationReport:
        report = report or ReconciliationReport()
        if not tables:
            return report
        created = await self._store.create_tables(app_id, tables)
        report.created_tables.extend(created)
        report.skipped_tables.extend(t.name for t in tables if t.name not in created)
        logger.info("Created %d new table(s): %s", len(created), ", ".join(created) or "-")
        return report

    async def add_columns(
        self,
        app_id: str,
        new_columns: Mapping[str, Sequence[ColumnDefinition]],
        report: ReconciliationReport | None = None,
    ) -> ReconciliationReport:
        """Append each new column to its existing table, preserving prior order."""
        report = report or ReconciliationReport()
        if not new_columns:
            return report

        registered = {t.name: set(t.column_names()) for t in await self._store.get_schema(app_id)}
        for table_name, columns in new_columns.items():
            if table_name not in registered:
                logger.warning("New columns given for unknown table %s, skipping", table_name)
                report.skipped_tables.append(table_name)
                continue
            for col in columns:
                if col.name in registered[table_name]:
                    report.existing_columns.setdefault(table_name, []).append(col.name)
                    continue
                try:
                    await self._store.add_column(app_id, table_name, col)
                except ColumnAlreadyExistsError:
                    logger.info("Column %s.%s already exists", table_name, col.name)
                    report.existing_columns.setdefault(table_name, []).append(col.name)
                    continue
                registered[table_name].add(col.name)
                report.added_columns.setdefault(table_name, []).append(col.name)

        for table_name, names in report.added_columns.items():
            logger.info("Added %d column(s) to %s: %s", len(names), table_name, ", ".join(names))
        return report

    async def reconcile(self, app_id: str, document: GeneratedDocument) -> ReconciliationReport:
        """Create the document's new tables, then add its new columns."""
        existing = {t.name for t in await self._store.get_schema(app_id)}
        new_tables = self.select_new_tables(document, existing)
        check_identifiers(new_tables, document.new_columns)
        report = await self.create_tables(app_id, new_tables)
        return await self.add_columns(app_id, document.new_columns, report)
