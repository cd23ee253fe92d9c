"""Auth service — password hashing, JWT issuing, session lifecycle."""

from __future__ import annotations

import hashlib
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi.exceptions import HTTPException
from jose import jwt
from passlib.context import CryptContext
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.models import UserSession
from leavedesk.common.constants import UserRole
from leavedesk.common.exceptions import ConflictError
from leavedesk.config import settings
from leavedesk.employees.models import Employee

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


# ── Passwords ───────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# ── JWT helpers ─────────────────────────────────────────────────────

def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def create_access_token(employee_id: uuid.UUID, role: UserRole) -> tuple[str, int]:
    """Return (encoded_jwt, expires_in_seconds)."""
    expires_in = settings.JWT_EXPIRY_HOURS * 3600
    payload = {
        "sub": str(employee_id),
        "role": role.value,
        "type": "access",
        "jti": uuid.uuid4().hex,  # two logins in the same second get distinct tokens
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRY_HOURS),
    }
    token = jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return token, expires_in


# ── Registration / login ────────────────────────────────────────────

async def get_employee_by_email(db: AsyncSession, email: str) -> Optional[Employee]:
    result = await db.execute(
        select(Employee).where(func.lower(Employee.email) == email.lower()),
    )
    return result.scalars().first()


async def register_employee(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    password: str,
) -> Employee:
    """Self-service sign-up. New accounts always start with the employee role."""
    if await get_employee_by_email(db, email) is not None:
        raise ConflictError("email", email)

    employee = Employee(
        name=name,
        email=email.lower(),
        password_hash=hash_password(password),
        role=UserRole.employee,
    )
    db.add(employee)
    await db.flush()
    logger.info("Registered employee %s", employee.id)
    return employee


async def authenticate(db: AsyncSession, email: str, password: str) -> Employee:
    """Return the active employee matching the credentials, or raise 401."""
    employee = await get_employee_by_email(db, email)
    if employee is None or not verify_password(password, employee.password_hash):
        logger.warning("Failed login attempt for %s", email)
        raise HTTPException(status_code=401, detail="Invalid email or password.")
    if not employee.is_active:
        raise HTTPException(status_code=401, detail="User account is inactive.")
    return employee


# ── Session management ──────────────────────────────────────────────

async def create_session(
    db: AsyncSession,
    employee: Employee,
    ip: Optional[str],
    user_agent: Optional[str],
) -> tuple[str, int]:
    """Issue an access token and persist its session.  Returns (token, expires_in)."""
    access_token, expires_in = create_access_token(employee.id, employee.role)

    session = UserSession(
        employee_id=employee.id,
        token_hash=hash_token(access_token),
        ip_address=ip,
        user_agent=user_agent,
        expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    )
    db.add(session)
    await db.flush()

    return access_token, expires_in


async def revoke_session(db: AsyncSession, token_hash: str) -> None:
    """Mark a session as revoked by its token hash."""
    result = await db.execute(
        select(UserSession).where(UserSession.token_hash == token_hash),
    )
    session = result.scalars().first()
    if session:
        session.is_revoked = True
        await db.flush()


async def revoke_all_sessions(db: AsyncSession, employee_id: uuid.UUID) -> None:
    """Revoke every active session of an employee (used on deactivation)."""
    result = await db.execute(
        select(UserSession).where(
            UserSession.employee_id == employee_id,
            UserSession.is_revoked.is_(False),
        ),
    )
    for session in result.scalars().all():
        session.is_revoked = True
    await db.flush()
