"""Employee Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Response          → response bodies (read)
  - *Summary           → compact read representation embedded elsewhere
"""


import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from leavedesk.common.constants import MAX_BALANCE, UserRole


# ═════════════════════════════════════════════════════════════════════
# Balances
# ═════════════════════════════════════════════════════════════════════


class BalancesResponse(BaseModel):
    """The four tracked leave-balance counters, in days."""

    model_config = ConfigDict(from_attributes=True)

    annual: Decimal
    sick: Decimal
    personal: Decimal
    emergency: Decimal


# ═════════════════════════════════════════════════════════════════════
# Employee
# ═════════════════════════════════════════════════════════════════════


class EmployeeCreate(BaseModel):
    """Admin-side account creation; balances fall back to the defaults."""

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole = UserRole.employee
    annual_leave_balance: Optional[Decimal] = Field(None, ge=0, le=MAX_BALANCE)
    sick_leave_balance: Optional[Decimal] = Field(None, ge=0, le=MAX_BALANCE)
    personal_leave_balance: Optional[Decimal] = Field(None, ge=0, le=MAX_BALANCE)
    emergency_leave_balance: Optional[Decimal] = Field(None, ge=0, le=MAX_BALANCE)


class EmployeeUpdate(BaseModel):
    """Partial update — only explicitly provided fields are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    role: Optional[UserRole] = None
    annual_leave_balance: Optional[Decimal] = Field(None, ge=0, le=MAX_BALANCE)
    sick_leave_balance: Optional[Decimal] = Field(None, ge=0, le=MAX_BALANCE)
    personal_leave_balance: Optional[Decimal] = Field(None, ge=0, le=MAX_BALANCE)
    emergency_leave_balance: Optional[Decimal] = Field(None, ge=0, le=MAX_BALANCE)
    email_notifications: Optional[bool] = None
    is_active: Optional[bool] = None


class EmployeeSummary(BaseModel):
    """Minimal employee info embedded in leave / paid-leave responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str


class EmployeeResponse(BaseModel):
    """Full employee representation including balances."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    annual_leave_balance: Decimal
    sick_leave_balance: Decimal
    personal_leave_balance: Decimal
    emergency_leave_balance: Decimal
    email_notifications: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime
