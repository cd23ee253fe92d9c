"""Public holidays router.

Routes:
    /public-holidays                       — List (any user), create (admin)
    /public-holidays/countries             — Supported country codes
    /public-holidays/fetch/{country}/{year} — Import from provider (manager+)
    /public-holidays/{id}                  — Get, update, delete (admin writes)
"""


import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import get_current_user, require_role
from leavedesk.common.constants import UserRole
from leavedesk.database import get_db
from leavedesk.employees.models import Employee
from leavedesk.holidays.schemas import (
    CountryOut,
    HolidayImportOut,
    PublicHolidayCreate,
    PublicHolidayOut,
    PublicHolidayUpdate,
)
from leavedesk.holidays.service import HolidayService

router = APIRouter(prefix="", tags=["public-holidays"])


# ── GET /public-holidays ────────────────────────────────────────────

@router.get("")
async def list_holidays(
    country: Optional[str] = Query(None, min_length=2, max_length=2),
    year: Optional[int] = Query(None, ge=1900, le=2100),
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    holidays = await HolidayService.list_holidays(db, country=country, year=year)
    return {
        "data": [PublicHolidayOut.model_validate(h).model_dump(mode="json") for h in holidays],
        "message": f"{len(holidays)} holidays found.",
    }


# ── GET /public-holidays/countries ─────────────────────────────────

@router.get("/countries", response_model=list[CountryOut])
async def list_countries(
    current_user: Employee = Depends(get_current_user),
):
    return HolidayService.supported_countries()


# ── POST /public-holidays/fetch/{country}/{year} ───────────────────

@router.post("/fetch/{country}/{year}")
async def fetch_holidays(
    country: str,
    year: int,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.manager)),
):
    """Pull a country's holidays for a year from the provider. Requires **manager**+."""
    created, fetched, skipped = await HolidayService.fetch_and_save(
        db, country, year, actor_id=current_user.id,
    )
    out = HolidayImportOut(
        country=country.upper(),
        year=year,
        fetched=fetched,
        created=[PublicHolidayOut.model_validate(h) for h in created],
        skipped=skipped,
    )
    return {
        "data": out.model_dump(mode="json"),
        "message": f"Imported {len(created)} new holidays.",
    }


# ── POST /public-holidays ───────────────────────────────────────────

@router.post("", status_code=201)
async def create_holiday(
    body: PublicHolidayCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.admin)),
):
    holiday = await HolidayService.create_holiday(db, body, actor_id=current_user.id)
    return {
        "data": PublicHolidayOut.model_validate(holiday).model_dump(mode="json"),
        "message": "Public holiday created successfully.",
    }


# ── GET /public-holidays/{id} ──────────────────────────────────────

@router.get("/{holiday_id}")
async def get_holiday(
    holiday_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    holiday = await HolidayService.get_holiday(db, holiday_id)
    return {"data": PublicHolidayOut.model_validate(holiday).model_dump(mode="json")}


# ── PATCH /public-holidays/{id} ────────────────────────────────────

@router.patch("/{holiday_id}")
async def update_holiday(
    holiday_id: uuid.UUID,
    body: PublicHolidayUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.admin)),
):
    holiday = await HolidayService.update_holiday(
        db, holiday_id, body, actor_id=current_user.id,
    )
    return {
        "data": PublicHolidayOut.model_validate(holiday).model_dump(mode="json"),
        "message": "Public holiday updated successfully.",
    }


# ── DELETE /public-holidays/{id} ───────────────────────────────────

@router.delete("/{holiday_id}")
async def delete_holiday(
    holiday_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Employee = Depends(require_role(UserRole.admin)),
):
    await HolidayService.delete_holiday(db, holiday_id, actor_id=current_user.id)
    return {"message": "Public holiday deleted successfully."}
