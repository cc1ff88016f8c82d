"""Schema registry table: declared columns per (application, table)."""

from sqlalchemy import JSON, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from appforge.db.base import Base, TimestampMixin


class AppSchemaRow(Base, TimestampMixin):
    __tablename__ = "app_schemas"
    __table_args__ = (
        UniqueConstraint("app_id", "table_name", name="uq_app_schemas_app_table"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    app_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    table_name: Mapped[str] = mapped_column(String(63), nullable=False)
    columns: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
