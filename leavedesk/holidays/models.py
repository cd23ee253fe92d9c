"""Public holiday ORM model."""

from __future__ import annotations

import uuid
import datetime as dt
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from leavedesk.database import Base


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class PublicHoliday(Base):
    """A non-working date for one country; excluded from chargeable days."""

    __tablename__ = "public_holidays"
    __table_args__ = (
        sa.UniqueConstraint("date", "country", name="uq_public_holidays_date_country"),
        sa.Index("ix_public_holidays_country_date", "country", "date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(sa.String(255), nullable=False)
    date: Mapped[dt.date] = mapped_column(sa.Date, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(sa.String(255))
    country: Mapped[str] = mapped_column(
        sa.String(2), nullable=False, default="LK", server_default="LK"
    )
    is_active: Mapped[bool] = mapped_column(
        sa.Boolean, nullable=False, default=True, server_default=sa.true()
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=sa.func.now(),
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=sa.func.now(),
    )

    def __repr__(self) -> str:
        return f"<PublicHoliday {self.country} {self.date} {self.name!r}>"
