"""Public holiday service — CRUD, range lookup for day counting, provider import.

Imports come from the public Nager.Date API
(``GET {HOLIDAY_API_BASE_URL}/PublicHolidays/{year}/{country}``); rows that
already exist for the same (date, country) are skipped.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import Any, Optional, Sequence

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.common.audit import create_audit_entry, snapshot
from leavedesk.common.constants import SUPPORTED_HOLIDAY_COUNTRIES
from leavedesk.common.exceptions import (
    ConflictError,
    ExternalServiceException,
    NotFoundException,
    ValidationException,
)
from leavedesk.config import settings
from leavedesk.holidays.models import PublicHoliday
from leavedesk.holidays.schemas import PublicHolidayCreate, PublicHolidayUpdate

logger = logging.getLogger(__name__)


def _validate_country(country: str) -> str:
    code = country.upper()
    if code not in SUPPORTED_HOLIDAY_COUNTRIES:
        raise ValidationException(
            {"country": [f"Unsupported country code '{country}'."]}
        )
    return code


def _validate_year(year: int) -> int:
    if not 1900 <= year <= 2100:
        raise ValidationException({"year": ["Year must be between 1900 and 2100."]})
    return year


# ═════════════════════════════════════════════════════════════════════
# HolidayService
# ═════════════════════════════════════════════════════════════════════


class HolidayService:
    """Stored holiday calendar plus import from the external provider."""

    # ── Queries ─────────────────────────────────────────────────────

    @staticmethod
    async def list_holidays(
        db: AsyncSession,
        *,
        country: Optional[str] = None,
        year: Optional[int] = None,
    ) -> Sequence[PublicHoliday]:
        """Active holidays, optionally for one country and/or year, by date."""
        query = select(PublicHoliday).where(PublicHoliday.is_active.is_(True))
        if country:
            query = query.where(PublicHoliday.country == country.upper())
        if year:
            query = query.where(
                PublicHoliday.date >= date(year, 1, 1),
                PublicHoliday.date <= date(year, 12, 31),
            )
        result = await db.execute(query.order_by(PublicHoliday.date))
        return result.scalars().all()

    @staticmethod
    async def get_holiday(db: AsyncSession, holiday_id: uuid.UUID) -> PublicHoliday:
        holiday = await db.get(PublicHoliday, holiday_id)
        if holiday is None:
            raise NotFoundException("PublicHoliday", str(holiday_id))
        return holiday

    @staticmethod
    async def get_holidays_in_range(
        db: AsyncSession,
        start: date,
        end: date,
        country: Optional[str] = None,
    ) -> set[date]:
        """Distinct active holiday dates with ``start <= d <= end``."""
        query = select(PublicHoliday.date).where(
            PublicHoliday.is_active.is_(True),
            PublicHoliday.date >= start,
            PublicHoliday.date <= end,
        )
        if country:
            query = query.where(PublicHoliday.country == country.upper())
        result = await db.execute(query)
        return {row[0] for row in result.all()}

    @staticmethod
    def supported_countries() -> list[dict[str, str]]:
        return [
            {"code": code, "name": name}
            for code, name in SUPPORTED_HOLIDAY_COUNTRIES.items()
        ]

    # ── Writes ──────────────────────────────────────────────────────

    @staticmethod
    async def _ensure_unique(
        db: AsyncSession,
        holiday_date: date,
        country: str,
        *,
        exclude_id: Optional[uuid.UUID] = None,
    ) -> None:
        query = select(PublicHoliday.id).where(
            PublicHoliday.date == holiday_date,
            PublicHoliday.country == country,
        )
        if exclude_id is not None:
            query = query.where(PublicHoliday.id != exclude_id)
        if (await db.execute(query)).scalar() is not None:
            raise ConflictError("date", f"{holiday_date.isoformat()} ({country})")

    @staticmethod
    async def create_holiday(
        db: AsyncSession,
        data: PublicHolidayCreate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PublicHoliday:
        country = _validate_country(data.country)
        await HolidayService._ensure_unique(db, data.date, country)

        holiday = PublicHoliday(
            name=data.name,
            date=data.date,
            description=data.description,
            country=country,
        )
        db.add(holiday)
        await db.flush()

        await create_audit_entry(
            db,
            action="create",
            entity_type="public_holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            new_values=data.model_dump(mode="json"),
        )
        return holiday

    @staticmethod
    async def update_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        data: PublicHolidayUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PublicHoliday:
        holiday = await HolidayService.get_holiday(db, holiday_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            return holiday

        if "date" in changes and changes["date"] != holiday.date:
            await HolidayService._ensure_unique(
                db, changes["date"], holiday.country, exclude_id=holiday.id,
            )

        old_values = snapshot(holiday, changes)
        for field, value in changes.items():
            setattr(holiday, field, value)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="public_holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            old_values=old_values,
            new_values=data.model_dump(mode="json", exclude_unset=True),
        )
        return holiday

    @staticmethod
    async def delete_holiday(
        db: AsyncSession,
        holiday_id: uuid.UUID,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> None:
        holiday = await HolidayService.get_holiday(db, holiday_id)
        await create_audit_entry(
            db,
            action="delete",
            entity_type="public_holiday",
            entity_id=holiday.id,
            actor_id=actor_id,
            old_values=snapshot(holiday, ("name", "date", "country")),
        )
        await db.delete(holiday)
        await db.flush()

    # ── Provider import ─────────────────────────────────────────────

    @staticmethod
    async def fetch_from_provider(country: str, year: int) -> list[dict[str, Any]]:
        """Return the provider's holiday list for *country* / *year*."""
        url = f"{settings.HOLIDAY_API_BASE_URL}/PublicHolidays/{year}/{country}"
        try:
            async with httpx.AsyncClient(timeout=settings.HOLIDAY_API_TIMEOUT_SECONDS) as client:
                resp = await client.get(url)
        except httpx.HTTPError as exc:
            logger.warning("Holiday provider request failed for %s/%s: %s", country, year, exc)
            raise ExternalServiceException(
                "Holiday Provider",
                f"Failed to fetch holidays for {country} {year}.",
            ) from exc

        if resp.status_code != 200:
            logger.warning(
                "Holiday provider returned %s for %s/%s", resp.status_code, country, year,
            )
            raise ExternalServiceException(
                "Holiday Provider",
                f"Holiday provider returned HTTP {resp.status_code} for {country} {year}.",
            )

        try:
            payload = resp.json()
        except ValueError as exc:
            raise ExternalServiceException(
                "Holiday Provider", "Holiday provider returned invalid JSON.",
            ) from exc
        if not isinstance(payload, list):
            raise ExternalServiceException(
                "Holiday Provider", "Holiday provider returned an unexpected payload.",
            )
        return payload

    @staticmethod
    async def fetch_and_save(
        db: AsyncSession,
        country: str,
        year: int,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[PublicHoliday], int, int]:
        """Import a country's holidays for a year.

        Returns ``(created, fetched_count, skipped_count)``.
        """
        country = _validate_country(country)
        year = _validate_year(year)
        items = await HolidayService.fetch_from_provider(country, year)

        existing = await HolidayService.get_existing_dates(db, country, year)
        created: list[PublicHoliday] = []
        skipped = 0
        for item in items:
            try:
                holiday_date = date.fromisoformat(item["date"])
                name = str(item.get("name") or item.get("localName") or "Public holiday")[:255]
                description = ", ".join(item.get("types") or [])[:255] or None
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed holiday entry: %r", item)
                skipped += 1
                continue

            if holiday_date in existing:
                skipped += 1
                continue

            holiday = PublicHoliday(
                name=name,
                date=holiday_date,
                description=description,
                country=country,
            )
            db.add(holiday)
            existing.add(holiday_date)
            created.append(holiday)

        await db.flush()

        await create_audit_entry(
            db,
            action="import",
            entity_type="public_holiday",
            entity_id=uuid.uuid5(uuid.NAMESPACE_URL, f"holidays/{country}/{year}"),
            actor_id=actor_id,
            new_values={
                "country": country,
                "year": year,
                "fetched": len(items),
                "created": len(created),
                "skipped": skipped,
            },
        )
        logger.info(
            "Imported %d holidays for %s/%s (%d skipped)", len(created), country, year, skipped,
        )
        return created, len(items), skipped

    @staticmethod
    async def get_existing_dates(db: AsyncSession, country: str, year: int) -> set[date]:
        """Every stored date for *country* in *year*, active or not."""
        result = await db.execute(
            select(PublicHoliday.date).where(
                PublicHoliday.country == country,
                PublicHoliday.date >= date(year, 1, 1),
                PublicHoliday.date <= date(year, 12, 31),
            )
        )
        return {row[0] for row in result.all()}
