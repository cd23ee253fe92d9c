"""Public holiday Pydantic v2 schemas."""


import uuid
import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _normalise_country(value: Optional[str]) -> Optional[str]:
    return value.upper() if value else value


class PublicHolidayCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    date: dt.date
    description: Optional[str] = Field(None, max_length=255)
    country: str = Field("LK", min_length=2, max_length=2)

    _upper_country = field_validator("country")(_normalise_country)


class PublicHolidayUpdate(BaseModel):
    """Partial update — only explicitly provided fields are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[dt.date] = None
    description: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None


class PublicHolidayOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    date: dt.date
    description: Optional[str] = None
    country: str
    is_active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class CountryOut(BaseModel):
    code: str
    name: str


class HolidayImportOut(BaseModel):
    """Result of pulling one country/year from the holiday provider."""

    country: str
    year: int
    fetched: int
    created: list[PublicHolidayOut]
    skipped: int
