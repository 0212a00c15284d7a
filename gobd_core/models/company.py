"""Company lookup row carrying the AI feature switch."""

from __future__ import annotations

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gobd_core.models.base import Base, CreatedAtMixin


class Company(CreatedAtMixin, Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    ai_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
