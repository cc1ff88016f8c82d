"""Schema registry repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from appforge.db.models.app_schema import AppSchemaRow
from appforge.repositories.base import BaseRepository


class AppSchemaRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, AppSchemaRow)

    async def get(self, app_id: str, table_name: str) -> AppSchemaRow | None:
        stmt = select(AppSchemaRow).where(
            AppSchemaRow.app_id == app_id,
            AppSchemaRow.table_name == table_name,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_app(self, app_id: str) -> list[AppSchemaRow]:
        stmt = (
            select(AppSchemaRow)
            .where(AppSchemaRow.app_id == app_id)
            .order_by(AppSchemaRow.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def append_column(self, row: AppSchemaRow, column: dict) -> AppSchemaRow:
        """Append one column, keeping prior order. Assigns a new list so the JSON change is flushed."""
        return await self.update(row, columns=[*row.columns, column])

    async def delete_by_app(self, app_id: str) -> int:
        return await self.delete_by_field("app_id", app_id)
