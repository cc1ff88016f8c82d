"""Application record repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from appforge.db.models.application import ApplicationRow
from appforge.repositories.base import BaseRepository


class ApplicationRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, ApplicationRow)

    async def get(self, app_id: str) -> ApplicationRow | None:
        return await self.get_by_id("app_id", app_id)

    async def list_recent(self, limit: int = 100) -> list[ApplicationRow]:
        stmt = (
            select(ApplicationRow)
            .order_by(ApplicationRow.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete(self, app_id: str) -> bool:
        return await self.delete_by_field("app_id", app_id) > 0
