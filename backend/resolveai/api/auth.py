"""Authentication API — unified login, citizen registration, profile."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from resolveai.api.deps import get_actor, get_db
from resolveai.auth.context import Actor
from resolveai.auth.jwt import create_employee_token, create_user_token
from resolveai.auth.passwords import check_new_password, hash_password, verify_password
from resolveai.errors import Conflict, Deactivated, Unauthenticated, ValidationError
from resolveai.middleware.metrics import logins_total
from resolveai.models import Employee, User
from resolveai.models.enums import UserRole
from resolveai.schemas.schemas import (
    EmployeeSchema,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserSchema,
)
from resolveai.services.employee_registry import only_digits

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

INVALID_CREDENTIALS = "Invalid credentials"


# ── Helpers ───────────────────────────────────────────────────────────────────

def user_schema(user: User) -> UserSchema:
    return UserSchema(id=user.id, name=user.name, email=user.email, role=user.role)


def employee_schema(employee: Employee, *, include_cpf: bool = False) -> EmployeeSchema:
    return EmployeeSchema(
        id=employee.id,
        employee_code=employee.employee_code,
        name=employee.name,
        cpf=employee.cpf if include_cpf else None,
        role=employee.role,
        is_active=employee.is_active,
        created_at=employee.created_at,
    )


async def _login_user(email: str, password: str, db: AsyncSession) -> LoginResponse:
    user = (await db.execute(
        select(User).where(User.email == email)
    )).scalar_one_or_none()

    if not user or not verify_password(password, user.password_hash):
        logins_total.labels(kind="user", outcome="rejected").inc()
        raise Unauthenticated(INVALID_CREDENTIALS)

    logins_total.labels(kind="user", outcome="ok").inc()
    logger.info("Login: %s (%s)", user.email, user.role)
    return LoginResponse(
        kind="user",
        token=create_user_token(user.id, user.role),
        user=user_schema(user),
    )


async def _login_employee(identifier: str, password: str, db: AsyncSession) -> LoginResponse:
    digits = only_digits(identifier)
    if not digits or len(digits) > 12:
        raise ValidationError("Enter a valid email or employee code")

    employee = (await db.execute(
        select(Employee).where(Employee.employee_code == int(digits))
    )).scalar_one_or_none()

    if not employee or not verify_password(password, employee.password_hash):
        logins_total.labels(kind="employee", outcome="rejected").inc()
        raise Unauthenticated(INVALID_CREDENTIALS)

    if not employee.is_active:
        logins_total.labels(kind="employee", outcome="disabled").inc()
        raise Deactivated()

    logins_total.labels(kind="employee", outcome="ok").inc()
    logger.info("Login: employee %s (%s)", employee.employee_code, employee.role)
    return LoginResponse(
        kind="employee",
        token=create_employee_token(employee.id, employee.employee_code, employee.role),
        employee=employee_schema(employee),
    )


# ── Endpoints ─────────────────────────────────────────────────────────────────

@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """
    Single identifier field: an email logs in a citizen or admin, anything
    else is read as an employee code.
    """
    identifier = body.identifier.strip()
    if not identifier or not body.password:
        raise ValidationError("Email/employee code and password are required")

    if "@" in identifier:
        return await _login_user(identifier.lower(), body.password, db)
    return await _login_employee(identifier, body.password, db)


@router.post("/register", status_code=201)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """Citizen self-registration."""
    email = body.email.strip().lower()
    if not email or not body.password:
        raise ValidationError("Email and password are required")
    if "@" not in email:
        raise ValidationError("Invalid email")
    check_new_password(body.password)

    exists = (await db.execute(
        select(User.id).where(User.email == email)
    )).scalar_one_or_none()
    if exists is not None:
        raise Conflict("Email already registered")

    user = User(
        name=body.name.strip() or None,
        email=email,
        password_hash=hash_password(body.password),
        role=UserRole.USER.value,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        raise Conflict("Email already registered") from e

    logger.info("Citizen registered: %s", user.email)
    return {"user": user_schema(user), "token": create_user_token(user.id, user.role)}


@router.get("/me")
async def me(actor: Actor = Depends(get_actor), db: AsyncSession = Depends(get_db)):
    """Return the current authenticated account."""
    if actor.is_employee:
        employee = await db.get(Employee, actor.id)
        return {"ok": True, "kind": "employee", "employee": employee_schema(employee)}

    user = await db.get(User, actor.id)
    return {"ok": True, "kind": "user", "user": user_schema(user)}
