"""Best-effort insertion of generated seed rows."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from appforge.config import settings
from appforge.errors.exceptions import AppForgeError, PartialSeedFailure
from appforge.storage.store import AppStore, full_table_name

logger = logging.getLogger(__name__)


@dataclass
class TableSeedResult:
    table_name: str
    inserted: int = 0
    failures: list[PartialSeedFailure] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)


@dataclass
class SeedReport:
    tables: dict[str, TableSeedResult] = field(default_factory=dict)

    @property
    def inserted(self) -> int:
        return sum(t.inserted for t in self.tables.values())

    @property
    def failed(self) -> int:
        return sum(t.failed for t in self.tables.values())

    def summary(self) -> dict[str, dict[str, int]]:
        return {name: {"inserted": t.inserted, "failed": t.failed} for name, t in self.tables.items()}


class SeedLoader:
    """Insert seed rows one at a time; a failing row never stops the others."""

    def __init__(self, store: AppStore, failure_log_limit: int | None = None):
        self._store = store
        self._failure_log_limit = (
            settings.seed_failure_log_limit if failure_log_limit is None else failure_log_limit
        )

    async def load(self, app_id: str, seed_data: Mapping[str, Any]) -> SeedReport:
        report = SeedReport()
        for table_name, rows in seed_data.items():
            result = report.tables.setdefault(table_name, TableSeedResult(table_name))
            if not isinstance(rows, list):
                logger.warning("Seed data for %s is not a list, skipping", table_name)
                self._record(result, PartialSeedFailure(table_name, rows, "seed rows must be a list"))
                continue
            try:
                target = full_table_name(app_id, table_name)
            except AppForgeError as exc:
                for row in rows:
                    self._record(result, PartialSeedFailure(table_name, row, exc))
                continue

            for row in rows:
                if not isinstance(row, dict):
                    self._record(result, PartialSeedFailure(table_name, row, "seed row must be an object"))
                    continue
                try:
                    await self._store.insert_row(target, row)
                except AppForgeError as exc:
                    self._record(result, PartialSeedFailure(table_name, row, exc.message))
                    continue
                result.inserted += 1

            if rows:
                logger.info(
                    "Seeded %s: %d/%d row(s) inserted, %d failed",
                    table_name,
                    result.inserted,
                    len(rows),
                    result.failed,
                )
        return report

    def _record(self, result: TableSeedResult, failure: PartialSeedFailure) -> None:
        result.failures.append(failure)
        if result.failed <= self._failure_log_limit:
            logger.warning("%s (row: %.200r)", failure.message, failure.row)
        elif result.failed == self._failure_log_limit + 1:
            logger.warning("Further seed failures for %s will not be logged individually", result.table_name)
