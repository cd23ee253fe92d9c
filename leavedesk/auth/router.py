"""Auth router — register, password login, logout, current user profile."""


from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from leavedesk.auth.dependencies import extract_bearer, get_current_user
from leavedesk.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, UserInfo
from leavedesk.auth.service import (
    authenticate,
    create_session,
    hash_token,
    register_employee,
    revoke_session,
)
from leavedesk.common.audit import create_audit_entry
from leavedesk.common.rate_limit import limiter, login_limit
from leavedesk.database import get_db
from leavedesk.employees.models import Employee
from leavedesk.employees.schemas import EmployeeResponse

router = APIRouter(prefix="", tags=["auth"])


# ── POST /register - Self-service sign-up ──────────────────────────

@router.post("/register", response_model=EmployeeResponse, status_code=201)
async def register(
    body: RegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    employee = await register_employee(
        db, name=body.name, email=body.email, password=body.password,
    )

    await create_audit_entry(
        db,
        action="register",
        entity_type="employee",
        entity_id=employee.id,
        actor_id=employee.id,
        new_values={"email": employee.email, "role": employee.role.value},
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    return EmployeeResponse.model_validate(employee)


# ── POST /login - Email + password ──────────────────────────────────

@router.post("/login", response_model=TokenResponse)
@limiter.limit(login_limit)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    employee = await authenticate(db, body.email, body.password)

    ip = request.client.host if request.client else None
    user_agent = request.headers.get("user-agent")
    access_token, expires_in = await create_session(db, employee, ip, user_agent)

    await create_audit_entry(
        db,
        action="login",
        entity_type="user_session",
        entity_id=employee.id,
        actor_id=employee.id,
        new_values={"ip": ip, "user_agent": user_agent},
        ip_address=ip,
        user_agent=user_agent,
    )

    return TokenResponse(
        access_token=access_token,
        expires_in=expires_in,
        user=UserInfo(
            id=employee.id,
            name=employee.name,
            email=employee.email,
            role=employee.role.value,
        ),
    )


# ── POST /logout - Revoke current session ──────────────────────────

@router.post("/logout")
async def logout(
    request: Request,
    employee: Employee = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await revoke_session(db, hash_token(extract_bearer(request)))

    await create_audit_entry(
        db,
        action="logout",
        entity_type="user_session",
        entity_id=employee.id,
        actor_id=employee.id,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    return {"message": "Logged out successfully"}


# ── GET /me - Current user profile ─────────────────────────────────

@router.get("/me", response_model=EmployeeResponse)
async def me(employee: Employee = Depends(get_current_user)):
    return EmployeeResponse.model_validate(employee)
