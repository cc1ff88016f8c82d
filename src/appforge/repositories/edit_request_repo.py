"""Edit request history repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from appforge.db.models.edit_request import EditRequestRow
from appforge.repositories.base import BaseRepository


class EditRequestRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, EditRequestRow)

    async def list_by_app(self, app_id: str, limit: int = 50) -> list[EditRequestRow]:
        stmt = (
            select(EditRequestRow)
            .where(EditRequestRow.app_id == app_id)
            .order_by(EditRequestRow.id.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_by_app(self, app_id: str) -> int:
        return await self.delete_by_field("app_id", app_id)
