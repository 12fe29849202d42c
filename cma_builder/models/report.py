"""CMA report publish state."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class CmaReport(TimestampMixin, Base):
    __tablename__ = "cma_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str | None] = mapped_column(String(255), default=None)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # Set once on first publish and never regenerated
    public_token: Mapped[str | None] = mapped_column(String(64), unique=True, default=None)
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
