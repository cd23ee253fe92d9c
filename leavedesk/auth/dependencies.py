"""Auth dependencies — JWT validation, RBAC enforcement."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Depends, Request
from fastapi.exceptions import HTTPException
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.models import UserSession
from leavedesk.auth.service import hash_token
from leavedesk.common.constants import UserRole
from leavedesk.common.exceptions import ForbiddenException
from leavedesk.config import settings
from leavedesk.database import get_db
from leavedesk.employees.models import Employee

# Role hierarchy - each role implicitly includes lower roles
ROLE_HIERARCHY: dict[UserRole, set[UserRole]] = {
    UserRole.admin: {UserRole.admin, UserRole.manager, UserRole.employee},
    UserRole.manager: {UserRole.manager, UserRole.employee},
    UserRole.employee: {UserRole.employee},
}


def has_role(employee: Employee, role: UserRole) -> bool:
    """True if *employee*'s role is *role* or above it in the hierarchy."""
    return role in ROLE_HIERARCHY.get(employee.role, {employee.role})


def extract_bearer(request: Request) -> str:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header.")
    return auth_header[7:]



def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


def decode_access_token(token: str) -> uuid.UUID:
    """Verify signature, expiry and type of an access token; return its subject."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except ExpiredSignatureError:
        raise _unauthorized("Token has expired.")
    except JWTError:
        raise _unauthorized("Invalid token.")

    if payload.get("type") != "access":
        raise _unauthorized("Invalid token type.")

    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise _unauthorized("Invalid token subject.")


# ── Core dependency ─────────────────────────────────────────────────

async def get_current_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Employee:
    """Resolve the bearer token to an active Employee.

    The token must belong to a live (unrevoked, unexpired) session. The
    ``role`` claim is informational only; permissions use the stored role so
    a promotion or demotion applies on the next request.
    """
    token = extract_bearer(request)
    employee_id = decode_access_token(token)

    session_result = await db.execute(
        select(UserSession.id).where(
            UserSession.token_hash == hash_token(token),
            UserSession.employee_id == employee_id,
            UserSession.is_revoked.is_(False),
            UserSession.expires_at > datetime.now(timezone.utc),
        ),
    )
    if session_result.first() is None:
        raise _unauthorized("Session invalid or expired.")

    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.is_active.is_(True)),
    )
    employee = result.scalars().first()
    if employee is None:
        raise _unauthorized("User account is inactive or not found.")
    return employee


# ── Role-based dependency ───────────────────────────────────────────

def require_role(*allowed_roles: UserRole) -> Callable:
    """Dependency factory: the caller must hold one of *allowed_roles* or a higher one."""

    async def _check(
        employee: Employee = Depends(get_current_user),
    ) -> Employee:
        if not any(has_role(employee, role) for role in allowed_roles):
            raise ForbiddenException(
                f"Role '{employee.role.value}' is not permitted. "
                f"Required: {', '.join(r.value for r in allowed_roles)}.",
            )
        return employee

    return _check
