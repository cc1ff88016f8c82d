"""Application record table."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from appforge.db.base import Base, TimestampMixin


class ApplicationRow(Base, TimestampMixin):
    __tablename__ = "applications"

    app_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    markup: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
